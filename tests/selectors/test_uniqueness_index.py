"""Tests for UniquenessIndex name checks."""

from decimal import Decimal

import pytest

from stock_ledger.selectors.uniqueness_index import UniquenessIndex


@pytest.fixture
def index(session):
    return UniquenessIndex(session)


class TestWarehouseNames:

    def test_free_name(self, index):
        assert index.is_warehouse_name_free("Berlin") is True

    def test_taken_name(self, index, ledger):
        ledger.create_warehouse("Berlin")

        assert index.is_warehouse_name_free("Berlin") is False

    def test_comparison_is_case_sensitive(self, index, ledger):
        ledger.create_warehouse("Berlin")

        assert index.is_warehouse_name_free("BERLIN") is True

    def test_rename_to_own_name(self, index, ledger):
        tokyo = ledger.create_warehouse("Tokyo")

        assert index.can_rename_warehouse(tokyo.id, "Tokyo") is True

    def test_rename_to_other_warehouses_name(self, index, ledger):
        ledger.create_warehouse("Tokyo")
        osaka = ledger.create_warehouse("Osaka")

        assert index.can_rename_warehouse(osaka.id, "Tokyo") is False

    def test_item_names_do_not_collide_with_warehouses(self, index, ledger):
        ledger.create_warehouse("Iron")

        assert index.is_inventory_name_free("Iron") is True


class TestInventoryNames:

    def test_taken_name(self, index, ledger):
        ledger.create_item("Iron", Decimal("1"))

        assert index.is_inventory_name_free("Iron") is False

    def test_rename_policy(self, index, ledger):
        iron = ledger.create_item("Iron", Decimal("1"))
        copper = ledger.create_item("Copper", Decimal("1"))

        assert index.can_rename_inventory(iron.id, "Iron") is True
        assert index.can_rename_inventory(iron.id, "Steel") is True
        assert index.can_rename_inventory(copper.id, "Iron") is False
