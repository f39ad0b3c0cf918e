"""
Race-safety tests for stock link quantities.

Real threads, each command on its own connection and transaction.  On
PostgreSQL (DATABASE_URL set) rows are locked with SELECT ... FOR UPDATE;
on SQLite every write transaction takes the database lock up front.  Either
way no update may be lost and a transfer must never be half applied.

Skip with: pytest -m "not slow_locks"
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from threading import Barrier

import pytest

from stock_ledger.exceptions import (
    InsufficientStockError,
    NotFoundError,
    WarehouseNameTakenError,
)

pytestmark = pytest.mark.slow_locks

THREADS = 8


def _run_parallel(fn, count: int = THREADS) -> list:
    """Run ``fn(i)`` on ``count`` threads released together; return outcomes."""
    barrier = Barrier(count)

    def worker(i):
        barrier.wait()
        try:
            return fn(i)
        except Exception as exc:
            return exc

    with ThreadPoolExecutor(max_workers=count) as pool:
        futures = [pool.submit(worker, i) for i in range(count)]
        return [f.result() for f in as_completed(futures)]


@pytest.fixture
def two_warehouses(commands):
    berlin = commands.create_warehouse("Berlin")
    tokyo = commands.create_warehouse("Tokyo")
    iron = commands.create_item("Iron", "10.2", berlin.id, 100).item
    commands.add_item_to_warehouse(iron.id, tokyo.id, 100)
    return berlin, tokyo, iron


class TestNoLostUpdates:
    """Concurrent adjustments of one link all land."""

    def test_concurrent_increases(self, commands, two_warehouses):
        berlin, _, iron = two_warehouses

        def increase_many(_):
            for _ in range(10):
                commands.increase_stock(iron.id, berlin.id, 1)

        outcomes = _run_parallel(increase_many)

        assert [o for o in outcomes if isinstance(o, Exception)] == []
        rows = {r.warehouse_name: r.quantity for r in commands.stock_for_item(iron.id)}
        assert rows["Berlin"] == 100 + THREADS * 10

    def test_concurrent_decreases_floor_at_zero(self, commands, two_warehouses):
        berlin, _, iron = two_warehouses

        def decrease_many(_):
            for _ in range(5):
                commands.decrease_stock(iron.id, berlin.id, 3)

        _run_parallel(decrease_many)

        rows = {r.warehouse_name: r.quantity for r in commands.stock_for_item(iron.id)}
        # 8 threads * 5 * 3 = 120 requested from 100
        assert rows["Berlin"] == 0


class TestTransferAtomicity:
    """Opposing transfers neither deadlock nor create or destroy stock."""

    def test_opposing_transfers_preserve_total(self, commands, two_warehouses):
        berlin, tokyo, iron = two_warehouses

        def shuffle(i):
            source, dest = (berlin, tokyo) if i % 2 == 0 else (tokyo, berlin)
            for _ in range(5):
                commands.transfer_stock(iron.id, source.id, dest.id, 4)

        outcomes = _run_parallel(shuffle)

        assert [o for o in outcomes if isinstance(o, Exception)] == []
        total = sum(r.quantity for r in commands.stock_for_item(iron.id))
        assert total == 200
        assert commands.total_stock()[0].quantity_sum == 200

    def test_overdraw_is_refused_not_clamped(self, commands, two_warehouses):
        berlin, tokyo, iron = two_warehouses

        outcomes = _run_parallel(
            lambda _: commands.transfer_stock(iron.id, berlin.id, tokyo.id, 30)
        )

        succeeded = [o for o in outcomes if not isinstance(o, Exception)]
        refused = [o for o in outcomes if isinstance(o, InsufficientStockError)]
        assert len(succeeded) == 3
        assert len(refused) == THREADS - 3
        rows = {r.warehouse_name: r.quantity for r in commands.stock_for_item(iron.id)}
        assert rows == {"Berlin": 10, "Tokyo": 190}


class TestCreateAndDeleteRaces:

    def test_one_winner_for_a_name(self, commands):
        outcomes = _run_parallel(lambda _: commands.create_warehouse("Osaka"))

        winners = [o for o in outcomes if not isinstance(o, Exception)]
        losers = [o for o in outcomes if isinstance(o, WarehouseNameTakenError)]
        assert len(winners) == 1
        assert len(losers) == THREADS - 1

    def test_increase_racing_delete_item(self, commands, two_warehouses):
        berlin, _, iron = two_warehouses

        def act(i):
            if i == 0:
                return commands.delete_item(iron.id)
            return commands.increase_stock(iron.id, berlin.id, 1)

        outcomes = _run_parallel(act)

        unexpected = [
            o for o in outcomes
            if isinstance(o, Exception) and not isinstance(o, NotFoundError)
        ]
        assert unexpected == []
        assert commands.total_stock() == []
        assert commands.list_items() == []
