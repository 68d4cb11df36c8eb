"""Inventory allocator — spreads one product's demand across warehouses.

Allocation is greedy in warehouse priority order: each warehouse gives up to
what it holds until the demand is met. A demand that cannot be met in full
is rolled back before returning, so a failed reservation never leaves stock
held anywhere.

Every successful reservation yields a ReservationReceipt listing what was
taken from which warehouse; releasing the receipt credits those same
warehouses.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from protean.exceptions import ValidationError

from fulfillment.inventory.warehouse import Warehouse
from fulfillment.utils.logging import get_logger


@dataclass(frozen=True)
class WarehouseAllocation:
    """Units of a product taken from one warehouse."""

    warehouse_id: str
    quantity: int


@dataclass(frozen=True)
class ReservationReceipt:
    """Result of a reservation attempt for a single product."""

    product_id: str
    requested: int
    success: bool
    allocations: tuple[WarehouseAllocation, ...] = ()

    @property
    def reserved(self) -> int:
        return sum(allocation.quantity for allocation in self.allocations)


class InventoryAllocator:
    """Reserves and releases stock over a priority-ordered set of warehouses."""

    def __init__(self, warehouses: Iterable[Warehouse], logger=None) -> None:
        self._warehouses = tuple(warehouses)
        self._by_id = {}
        for warehouse in self._warehouses:
            if warehouse.warehouse_id in self._by_id:
                raise ValidationError({"warehouses": [f"Duplicate warehouse {warehouse.warehouse_id}"]})
            self._by_id[warehouse.warehouse_id] = warehouse
        self._logger = logger or get_logger(__name__)

    @property
    def warehouses(self) -> tuple[Warehouse, ...]:
        return self._warehouses

    def get_warehouse(self, warehouse_id: str) -> Warehouse:
        try:
            return self._by_id[warehouse_id]
        except KeyError:
            raise ValidationError({"warehouse_id": [f"Unknown warehouse {warehouse_id}"]}) from None

    def get_total_stock(self, product_id: str) -> int:
        return sum(warehouse.get_stock(product_id) for warehouse in self._warehouses)

    def reserve(self, product_id: str, quantity: int) -> ReservationReceipt:
        """Reserve `quantity` units of a product across warehouses.

        Walks the warehouses in priority order taking min(available, remaining)
        from each. If the warehouses run out before the demand is met, every
        unit taken during this call is released back to its warehouse and a
        failed receipt is returned.
        """
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        remaining = quantity
        taken: list[WarehouseAllocation] = []

        for warehouse in self._warehouses:
            available = warehouse.get_stock(product_id)
            take = min(available, remaining)
            if take <= 0:
                continue
            # A concurrent reservation may drain the warehouse between the
            # read and the reserve; the warehouse then contributes nothing.
            if not warehouse.reserve_stock(product_id, take):
                continue
            taken.append(WarehouseAllocation(warehouse_id=warehouse.warehouse_id, quantity=take))
            remaining -= take
            if remaining == 0:
                self._logger.debug(
                    "stock_reserved",
                    product_id=product_id,
                    quantity=quantity,
                    allocations=[(a.warehouse_id, a.quantity) for a in taken],
                )
                return ReservationReceipt(
                    product_id=product_id,
                    requested=quantity,
                    success=True,
                    allocations=tuple(taken),
                )

        self._rollback(product_id, taken)
        self._logger.info(
            "stock_reservation_failed",
            product_id=product_id,
            requested=quantity,
            shortfall=remaining,
        )
        return ReservationReceipt(product_id=product_id, requested=quantity, success=False)

    def release(self, receipt: ReservationReceipt) -> None:
        """Credit every allocation of a receipt back to the warehouse it came from."""
        if not receipt.success:
            return
        self._rollback(receipt.product_id, receipt.allocations)
        self._logger.debug("stock_released", product_id=receipt.product_id, quantity=receipt.reserved)

    def _rollback(self, product_id: str, allocations: Iterable[WarehouseAllocation]) -> None:
        for allocation in allocations:
            self._by_id[allocation.warehouse_id].release_stock(product_id, allocation.quantity)
