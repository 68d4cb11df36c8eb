"""Order Service — orchestrates reserve → pay → ship for an order.

Every external step is followed by a state change recorded on the Order
aggregate, and every failure either leaves the order where it was or runs
a compensating action:

    create_order     reserve each line item; on any shortfall release what
                     this call reserved and leave the order in Created
    process_payment  one gateway call; Completed or Failed, order stays
                     in Processing
    ship_order       courier handoff; on a tracking number the order moves
                     to In_Delivery, otherwise nothing changes
    cancel_order     release the order's reservations, then cancel

Outcomes the caller is expected to handle (shortfall, decline, courier
rejection) are returned as booleans. Calls made in the wrong state raise
ValidationError before anything is mutated.
"""

import threading

from protean.exceptions import ValidationError

from fulfillment.carrier import CarrierPort, get_carrier
from fulfillment.config import FulfillmentSettings
from fulfillment.gateway import PaymentGateway, get_gateway
from fulfillment.inventory.allocator import InventoryAllocator, ReservationReceipt
from fulfillment.order.order import DeliveryStatus, Order, OrderStatus, PaymentStatus
from fulfillment.utils.logging import get_logger

_COURIER_PROGRESS_STATUSES = {DeliveryStatus.IN_TRANSIT, DeliveryStatus.RETURNED}


def _normalize_status(text: str) -> str:
    return text.replace("_", "").replace(" ", "").lower()


def _parse_courier_status(raw: str | None) -> DeliveryStatus | None:
    """Map a courier's status string ("InTransit", "In_Transit", "IN_TRANSIT") onto DeliveryStatus."""
    if not raw:
        return None
    key = _normalize_status(raw)
    for status in DeliveryStatus:
        if key in (_normalize_status(status.value), _normalize_status(status.name)):
            return status
    return None


class OrderService:
    def __init__(
        self,
        allocator: InventoryAllocator,
        payment_gateway: PaymentGateway,
        carrier: CarrierPort,
        settings: FulfillmentSettings | None = None,
        logger=None,
    ) -> None:
        self._allocator = allocator
        self._gateway = payment_gateway
        self._carrier = carrier
        self._settings = settings or FulfillmentSettings()
        self._logger = logger or get_logger(__name__)

        self._lock = threading.Lock()
        self._held: dict[str, tuple[ReservationReceipt, ...]] = {}
        self._in_flight: set[str] = set()

    @classmethod
    def from_settings(cls, allocator: InventoryAllocator, settings: FulfillmentSettings, logger=None) -> "OrderService":
        """Build a service with the gateway and carrier adapters named in settings."""
        return cls(
            allocator=allocator,
            payment_gateway=get_gateway(settings.payment_gateway),
            carrier=get_carrier(settings.carrier_adapter),
            settings=settings,
            logger=logger,
        )

    @property
    def allocator(self) -> InventoryAllocator:
        return self._allocator

    def held_reservations(self, order_id) -> tuple[ReservationReceipt, ...]:
        with self._lock:
            return self._held.get(str(order_id), ())

    # -------------------------------------------------------------------
    # Reservation
    # -------------------------------------------------------------------
    def create_order(self, order: Order) -> bool:
        """Reserve stock for every line item and place the order.

        All-or-nothing: if any item cannot be reserved in full, the items
        already reserved by this call are released and the order stays in
        Created.
        """
        order_id = str(order.id)
        self._assert_placeable(order)

        with self._lock:
            if order_id in self._in_flight:
                raise ValidationError({"order_id": [f"Order {order_id} is already being placed"]})
            self._in_flight.add(order_id)

        try:
            # Another caller may have placed the order while we waited for the slot.
            self._assert_placeable(order)

            receipts: list[ReservationReceipt] = []
            try:
                for item in order.items:
                    receipt = self._allocator.reserve(str(item.product_id), item.quantity)
                    if not receipt.success:
                        self._release_all(receipts)
                        self._logger.warning(
                            "order_reservation_failed",
                            order_id=order_id,
                            product_id=str(item.product_id),
                            quantity=item.quantity,
                            released_items=len(receipts),
                        )
                        return False
                    receipts.append(receipt)

                order.place()
            except BaseException:
                self._release_all(receipts)
                raise

            with self._lock:
                self._held[order_id] = tuple(receipts)
        finally:
            with self._lock:
                self._in_flight.discard(order_id)

        self._logger.info("order_placed", order_id=order_id, total_amount=order.total_amount)
        return True

    @staticmethod
    def _assert_placeable(order: Order) -> None:
        if OrderStatus(order.status) != OrderStatus.CREATED:
            raise ValidationError({"status": [f"Order {order.id} is {order.status}, expected Created"]})
        if not order.items:
            raise ValidationError({"items": ["Cannot place an order without items"]})

    def cancel_order(self, order: Order, reason: str | None = None) -> None:
        """Cancel a Created or Processing order and return its reserved stock."""
        order_id = str(order.id)
        if not order.is_cancellable:
            raise ValidationError({"status": [f"Cannot cancel an order in {order.status} state"]})

        with self._lock:
            receipts = self._held.pop(order_id, ())
        self._release_all(receipts)
        order.cancel(reason)

        self._logger.info(
            "order_cancelled",
            order_id=order_id,
            reason=reason,
            released_units=sum(r.reserved for r in receipts),
        )

    def _release_all(self, receipts) -> None:
        for receipt in reversed(list(receipts)):
            self._allocator.release(receipt)

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def process_payment(self, order: Order) -> bool:
        """Charge the attached payment once. Returns True when it is Completed."""
        order.assert_ready_for_payment()
        order_id = str(order.id)

        result = self._gateway.process_payment(order.payment)
        if result.success:
            order.record_payment_success(result.external_transaction_id)
            self._logger.info(
                "payment_completed",
                order_id=order_id,
                amount=order.payment.amount,
                transaction_id=result.external_transaction_id,
            )
            return True

        order.record_payment_failure(result.failure_reason)
        self._logger.warning("payment_failed", order_id=order_id, reason=result.failure_reason)

        if self._settings.release_stock_on_payment_failure:
            self.cancel_order(order, reason=f"Payment failed: {result.failure_reason}")
        return False

    def refund_payment(self, order: Order) -> bool:
        if order.payment is None:
            raise ValidationError({"payment": ["Order has no payment attached"]})
        if PaymentStatus(order.payment.status) != PaymentStatus.COMPLETED:
            raise ValidationError({"payment": [f"Payment is {order.payment.status}, expected Completed"]})

        result = self._gateway.refund_payment(order.payment)
        if not result.success:
            self._logger.warning("refund_failed", order_id=str(order.id), reason=result.failure_reason)
            return False

        order.record_refund()
        self._logger.info("payment_refunded", order_id=str(order.id), refund_id=result.gateway_refund_id)
        return True

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def ship_order(self, order: Order) -> bool:
        """Hand the delivery to the courier. Returns True once the order is In_Delivery."""
        order.assert_ready_for_shipment(require_payment=self._settings.require_payment_before_shipping)
        order_id = str(order.id)

        tracking_number = self._carrier.create_shipment(order.delivery)
        if not tracking_number:
            self._logger.warning("shipment_rejected", order_id=order_id, address=order.delivery.address)
            return False

        order.record_shipment(tracking_number)
        with self._lock:
            # Stock has left the warehouses; nothing is left to release.
            self._held.pop(order_id, None)
        self._logger.info("order_shipped", order_id=order_id, tracking_number=tracking_number)
        return True

    def track_delivery(self, order: Order) -> str:
        """Ask the courier for the delivery's status and record courier progress."""
        delivery = order.delivery
        if delivery is None or not delivery.tracking_number:
            raise ValidationError({"delivery": ["Order has no shipped delivery to track"]})

        status = self._carrier.get_tracking_status(delivery.tracking_number)
        reported = _parse_courier_status(status)
        current = DeliveryStatus(delivery.status)
        if (
            reported in _COURIER_PROGRESS_STATUSES
            and reported != current
            and current in (DeliveryStatus.SHIPPED, DeliveryStatus.IN_TRANSIT)
        ):
            order.update_delivery_status(reported.value)

        self._logger.debug("delivery_tracked", order_id=str(order.id), status=status)
        return status

    def complete_delivery(self, order: Order) -> None:
        """Record the courier's confirmation of final delivery."""
        order.mark_delivered()
        self._logger.info("order_delivered", order_id=str(order.id))
