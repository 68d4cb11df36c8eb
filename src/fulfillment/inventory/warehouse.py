"""Warehouse stock ledger — available quantity per product at one location.

Quantities never go negative. All mutation goes through add/reserve/release,
and each of those runs under the warehouse's own lock so a reservation's
availability check and decrement are a single step for concurrent callers.
"""

import threading

from protean.exceptions import ValidationError


class Warehouse:
    """Stock ledger for a single physical location."""

    def __init__(self, warehouse_id: str, location: str) -> None:
        self.warehouse_id = warehouse_id
        self.location = location
        self._stock: dict[str, int] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Warehouse({self.warehouse_id!r}, {self.location!r})"

    @staticmethod
    def _check_quantity(quantity: int) -> None:
        if quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})

    def get_stock(self, product_id: str) -> int:
        """Available units of a product; 0 when the product is unknown here."""
        with self._lock:
            return self._stock.get(product_id, 0)

    def add_stock(self, product_id: str, quantity: int) -> None:
        self._check_quantity(quantity)
        with self._lock:
            self._stock[product_id] = self._stock.get(product_id, 0) + quantity

    def reserve_stock(self, product_id: str, quantity: int) -> bool:
        """Take `quantity` units if that many are available.

        Returns False without touching the ledger on a shortfall.
        """
        self._check_quantity(quantity)
        with self._lock:
            available = self._stock.get(product_id, 0)
            if available < quantity:
                return False
            self._stock[product_id] = available - quantity
            return True

    def release_stock(self, product_id: str, quantity: int) -> None:
        """Return previously reserved units to the ledger."""
        self.add_stock(product_id, quantity)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._stock)
