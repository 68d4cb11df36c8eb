"""Tests for the per-warehouse stock ledger."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from fulfillment.inventory.warehouse import Warehouse
from protean.exceptions import ValidationError


def _make_warehouse(**stock):
    warehouse = Warehouse("wh-001", "Almaty Warehouse")
    for product_id, quantity in stock.items():
        warehouse.add_stock(product_id, quantity)
    return warehouse


class TestGetStock:
    def test_unknown_product_has_zero_stock(self):
        warehouse = _make_warehouse()
        assert warehouse.get_stock("prod-unknown") == 0

    def test_get_stock_does_not_create_entry(self):
        warehouse = _make_warehouse()
        warehouse.get_stock("prod-unknown")
        assert warehouse.snapshot() == {}


class TestAddStock:
    def test_add_creates_entry(self):
        warehouse = _make_warehouse()
        warehouse.add_stock("prod-001", 7)
        assert warehouse.get_stock("prod-001") == 7

    def test_add_accumulates(self):
        warehouse = _make_warehouse(**{"prod-001": 7})
        warehouse.add_stock("prod-001", 3)
        assert warehouse.get_stock("prod-001") == 10

    def test_add_zero_is_allowed(self):
        warehouse = _make_warehouse()
        warehouse.add_stock("prod-001", 0)
        assert warehouse.snapshot() == {"prod-001": 0}

    def test_add_negative_is_rejected(self):
        warehouse = _make_warehouse(**{"prod-001": 5})
        with pytest.raises(ValidationError) as exc_info:
            warehouse.add_stock("prod-001", -1)
        assert "quantity" in exc_info.value.messages
        assert warehouse.get_stock("prod-001") == 5


class TestReserveStock:
    def test_reserve_decrements_when_enough(self):
        warehouse = _make_warehouse(**{"prod-001": 5})
        assert warehouse.reserve_stock("prod-001", 3) is True
        assert warehouse.get_stock("prod-001") == 2

    def test_reserve_exact_quantity_empties_entry(self):
        warehouse = _make_warehouse(**{"prod-001": 5})
        assert warehouse.reserve_stock("prod-001", 5) is True
        assert warehouse.get_stock("prod-001") == 0

    def test_reserve_shortfall_leaves_ledger_untouched(self):
        warehouse = _make_warehouse(**{"prod-001": 2})
        assert warehouse.reserve_stock("prod-001", 3) is False
        assert warehouse.get_stock("prod-001") == 2

    def test_reserve_unknown_product_fails(self):
        warehouse = _make_warehouse()
        assert warehouse.reserve_stock("prod-unknown", 1) is False

    def test_reserve_negative_is_rejected(self):
        warehouse = _make_warehouse(**{"prod-001": 2})
        with pytest.raises(ValidationError):
            warehouse.reserve_stock("prod-001", -1)


class TestReleaseStock:
    def test_release_restores_reserved_units(self):
        warehouse = _make_warehouse(**{"prod-001": 5})
        warehouse.reserve_stock("prod-001", 4)
        warehouse.release_stock("prod-001", 4)
        assert warehouse.get_stock("prod-001") == 5


class TestConcurrentReservations:
    def test_successful_reservations_never_exceed_stock(self):
        warehouse = _make_warehouse(**{"prod-001": 50})

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: warehouse.reserve_stock("prod-001", 1), range(200)))

        assert results.count(True) == 50
        assert warehouse.get_stock("prod-001") == 0

    def test_multi_unit_reservations_never_overdraw(self):
        warehouse = _make_warehouse(**{"prod-001": 10})

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: warehouse.reserve_stock("prod-001", 3), range(40)))

        assert results.count(True) == 3
        assert warehouse.get_stock("prod-001") == 1
