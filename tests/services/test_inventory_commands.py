"""
End-to-end tests through InventoryCommands, the command facade.

Every command runs in its own committed transaction, so these tests see
exactly what a caller would.
"""

from decimal import Decimal

import pytest

from stock_ledger.exceptions import (
    BlankNameError,
    ConflictError,
    ErrorKind,
    InsufficientStockError,
    InventoryNameTakenError,
    InventoryNotFoundError,
    MalformedNumberError,
    NegativeValueError,
    NotFoundError,
    PreconditionFailedError,
    StockLinkNotFoundError,
    WarehouseNameTakenError,
    WarehouseNotFoundError,
)


class TestWalkthroughScenarios:
    """End-to-end walk-throughs of everyday ledger use."""

    def test_create_in_default_then_add_to_berlin(self, commands):
        berlin = commands.create_warehouse("Berlin")
        iron = commands.create_item("Iron", Decimal("10.2"), quantity=5).item

        commands.add_item_to_warehouse(iron.id, berlin.id, 10)

        rows = commands.stock_by_warehouse(berlin.id)
        assert len(rows) == 1
        assert rows[0].name == "Iron"
        assert rows[0].quantity == 10

    def test_increase_then_decrease(self, commands):
        berlin = commands.create_warehouse("Berlin")
        iron = commands.create_item("Iron", "10.2", berlin.id, 22).item

        assert commands.increase_stock(iron.id, berlin.id, 15).quantity == 37
        assert commands.decrease_stock(iron.id, berlin.id, 15).quantity == 22

    def test_decrease_below_zero_clamps(self, commands):
        berlin = commands.create_warehouse("Berlin")
        iron = commands.create_item("Iron", "10.2", berlin.id, 22).item

        assert commands.decrease_stock(iron.id, berlin.id, 100).quantity == 0

    def test_delete_warehouse_after_clearing_stock(self, commands):
        berlin = commands.create_warehouse("Berlin")
        iron = commands.create_item("Iron", "10.2", berlin.id, 3).item

        with pytest.raises(PreconditionFailedError):
            commands.delete_warehouse(berlin.id)

        commands.remove_item_from_warehouse(iron.id, berlin.id)
        commands.delete_warehouse(berlin.id)

        with pytest.raises(WarehouseNotFoundError):
            commands.get_warehouse(berlin.id)

    def test_rename_to_own_name_but_not_anothers(self, commands):
        tokyo = commands.create_warehouse("Tokyo")
        osaka = commands.create_warehouse("Osaka")

        assert commands.rename_warehouse(tokyo.id, "Tokyo").name == "Tokyo"
        with pytest.raises(ConflictError):
            commands.rename_warehouse(osaka.id, "Tokyo")


class TestBootstrap:

    def test_default_warehouse_exists(self, commands):
        names = [w.name for w in commands.list_warehouses()]

        assert names == ["None"]

    def test_ensure_default_is_idempotent(self, commands):
        first = commands.list_warehouses()[0]

        again = commands.ensure_default_warehouse()

        assert again == first
        assert len(commands.list_warehouses()) == 1

    def test_create_item_without_default_warehouse(self, session_factory):
        from stock_ledger.services.inventory_commands import InventoryCommands

        bare = InventoryCommands(session_factory)

        with pytest.raises(WarehouseNotFoundError):
            bare.create_item("Iron", "1", quantity=1)


class TestWarehouseCommands:

    def test_names_are_stored_trimmed(self, commands):
        warehouse = commands.create_warehouse("  Berlin  ")

        assert commands.get_warehouse(warehouse.id).name == "Berlin"

    def test_duplicate_after_trimming(self, commands):
        commands.create_warehouse("Berlin")

        with pytest.raises(WarehouseNameTakenError):
            commands.create_warehouse(" Berlin ")

    def test_blank_name(self, commands):
        with pytest.raises(BlankNameError) as exc_info:
            commands.create_warehouse("   ")

        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT

    def test_list_is_ordered_by_id(self, commands):
        commands.create_warehouse("Zurich")
        commands.create_warehouse("Amsterdam")

        assert [w.name for w in commands.list_warehouses()] == ["None", "Zurich", "Amsterdam"]

    def test_stock_by_missing_warehouse(self, commands):
        with pytest.raises(WarehouseNotFoundError):
            commands.stock_by_warehouse(9999)


class TestItemCommands:

    def test_create_item_defaults(self, commands):
        created = commands.create_item("Iron", "10.2")
        default = commands.list_warehouses()[0]

        assert created.stock.warehouse_id == default.id
        assert created.stock.quantity == 0

    def test_create_item_in_named_warehouse(self, commands):
        berlin = commands.create_warehouse("Berlin")

        created = commands.create_item("Iron", 10, berlin.id, 8)

        assert created.stock.warehouse_id == berlin.id
        assert commands.get_item(created.item.id).price == Decimal("10")

    def test_unstocked_item(self, commands):
        item = commands.create_unstocked_item("Gold", "99.5")

        assert commands.stock_for_item(item.id) == []
        assert item.id not in [row.id for row in commands.total_stock()]

    def test_invalid_price(self, commands):
        with pytest.raises(MalformedNumberError):
            commands.create_item("Iron", "ten")
        with pytest.raises(NegativeValueError):
            commands.create_item("Iron", "-1")

        assert commands.list_items() == []

    def test_oversized_quantity_is_typed(self, commands):
        berlin = commands.create_warehouse("Berlin")

        with pytest.raises(MalformedNumberError):
            commands.create_item("Iron", "1", berlin.id, 2**63)

        assert commands.list_items() == []

    def test_price_read_back_equals_price_returned(self, commands):
        created = commands.create_item("Iron", "10.1234").item

        assert commands.get_item(created.id).price == created.price == Decimal("10.1234")
        with pytest.raises(MalformedNumberError):
            commands.create_item("Copper", "10.12345")

    def test_update_item(self, commands):
        iron = commands.create_item("Iron", "10.2").item

        updated = commands.update_item(iron.id, name="  Cast Iron ")

        assert updated.name == "Cast Iron"
        assert updated.price == Decimal("10.2")

    def test_update_to_taken_name(self, commands):
        iron = commands.create_item("Iron", "1").item
        commands.create_item("Copper", "1")

        with pytest.raises(InventoryNameTakenError):
            commands.update_item(iron.id, name="Copper")

    def test_delete_item_cascades(self, commands):
        berlin = commands.create_warehouse("Berlin")
        iron = commands.create_item("Iron", "1", quantity=5).item
        commands.add_item_to_warehouse(iron.id, berlin.id, 2)

        commands.delete_item(iron.id)

        assert commands.total_stock() == []
        with pytest.raises(InventoryNotFoundError):
            commands.get_item(iron.id)
        commands.delete_warehouse(berlin.id)


class TestStockCommands:

    def test_remove_twice(self, commands):
        iron = commands.create_item("Iron", "1", quantity=5)

        commands.remove_item_from_warehouse(iron.item.id, iron.stock.warehouse_id)

        with pytest.raises(StockLinkNotFoundError) as exc_info:
            commands.remove_item_from_warehouse(iron.item.id, iron.stock.warehouse_id)
        assert isinstance(exc_info.value, NotFoundError)

    def test_transfer(self, commands):
        berlin = commands.create_warehouse("Berlin")
        iron = commands.create_item("Iron", "1", quantity=10)

        result = commands.transfer_stock(
            iron.item.id, iron.stock.warehouse_id, berlin.id, 4
        )

        assert result.source.quantity == 6
        assert result.destination.quantity == 4
        locations = {row.warehouse_name: row.quantity for row in commands.stock_for_item(iron.item.id)}
        assert locations == {"None": 6, "Berlin": 4}

    def test_failed_transfer_leaves_nothing_behind(self, commands):
        """A rejected transfer leaves both warehouses as they were."""
        berlin = commands.create_warehouse("Berlin")
        iron = commands.create_item("Iron", "1", quantity=3)

        with pytest.raises(InsufficientStockError):
            commands.transfer_stock(iron.item.id, iron.stock.warehouse_id, berlin.id, 4)

        assert commands.stock_by_warehouse(berlin.id) == []
        assert commands.stock_for_item(iron.item.id)[0].quantity == 3

    def test_total_stock_sums_over_warehouses(self, commands):
        berlin = commands.create_warehouse("Berlin")
        iron = commands.create_item("Iron", "10.2", quantity=5).item
        copper = commands.create_item("Copper", "2", berlin.id, 1).item
        commands.add_item_to_warehouse(iron.id, berlin.id, 10)

        totals = {row.name: row.quantity_sum for row in commands.total_stock()}

        assert totals == {"Iron": 15, "Copper": 1}
        assert copper.id in [row.id for row in commands.total_stock()]

    def test_total_stock_omits_items_without_links(self, commands):
        iron = commands.create_item("Iron", "1", quantity=5)
        commands.remove_item_from_warehouse(iron.item.id, iron.stock.warehouse_id)

        assert commands.total_stock() == []
        assert [i.name for i in commands.list_items()] == ["Iron"]

    def test_total_stock_keeps_items_at_zero(self, commands):
        commands.create_item("Iron", "1", quantity=0)

        totals = commands.total_stock()

        assert [(row.name, row.quantity_sum) for row in totals] == [("Iron", 0)]


class TestCommandLogging:

    def test_command_context_on_log_lines(self, commands, captured_logs):
        berlin = commands.create_warehouse("Berlin")

        records = [r for r in captured_logs() if r["message"] == "warehouse_created"]
        assert len(records) == 1
        assert records[0]["command"] == "create_warehouse"
        assert records[0]["warehouse_name"] == "Berlin"
        assert str(records[0]["warehouse_id"]) == str(berlin.id)
        assert "correlation_id" in records[0]

    def test_rejection_logged_with_code(self, commands, captured_logs):
        with pytest.raises(WarehouseNotFoundError):
            commands.delete_warehouse(9999)

        rejected = [r for r in captured_logs() if r["message"] == "command_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["error_code"] == "WAREHOUSE_NOT_FOUND"
        assert rejected[0]["error_kind"] == "not_found"
        assert rejected[0]["command"] == "delete_warehouse"

    def test_caller_correlation_id_is_kept(self, commands, captured_logs):
        from stock_ledger.logging_config import LogContext

        with LogContext.bind(correlation_id="req-42"):
            commands.create_warehouse("Berlin")

        records = [r for r in captured_logs() if r["message"] == "warehouse_created"]
        assert records[0]["correlation_id"] == "req-42"
