"""Order aggregate (CQRS) — line items, payment and delivery for one purchase.

The aggregate owns its state machine but never talks to warehouses, gateways
or couriers itself; `OrderService` runs those steps and records their
outcomes here.

State Machine:
    CREATED → PROCESSING → IN_DELIVERY → DELIVERED
    {CREATED, PROCESSING} → CANCELLED

Payment:  PENDING → COMPLETED → REFUNDED,  PENDING → FAILED
Delivery: PENDING → SHIPPED → IN_TRANSIT → DELIVERED
          {SHIPPED, IN_TRANSIT} → RETURNED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    HasOne,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from fulfillment.domain import fulfillment
from fulfillment.order.events import (
    DeliveryScheduled,
    DeliveryStatusUpdated,
    ItemAdded,
    OrderCancelled,
    OrderCreated,
    OrderDelivered,
    OrderPlaced,
    OrderShipped,
    PaymentAttached,
    PaymentCompleted,
    PaymentFailed,
    PaymentRefunded,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    CREATED = "Created"
    PROCESSING = "Processing"
    IN_DELIVERY = "In_Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentType(Enum):
    CARD = "Card"
    EWALLET = "EWallet"
    BANK_TRANSFER = "Bank_Transfer"


class PaymentStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class DeliveryStatus(Enum):
    PENDING = "Pending"
    SHIPPED = "Shipped"
    IN_TRANSIT = "In_Transit"
    DELIVERED = "Delivered"
    RETURNED = "Returned"


_VALID_TRANSITIONS = {
    OrderStatus.CREATED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.IN_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.IN_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),  # replaced by a new payment on retry
    PaymentStatus.REFUNDED: set(),
}

_DELIVERY_TRANSITIONS = {
    DeliveryStatus.PENDING: {DeliveryStatus.SHIPPED},
    DeliveryStatus.SHIPPED: {DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED, DeliveryStatus.RETURNED},
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.DELIVERED, DeliveryStatus.RETURNED},
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.RETURNED: set(),
}


def _same_amount(left: float, right: float) -> bool:
    return round(left, 2) == round(right, 2)


_REASON_MAX_LENGTH = 500


def _clip_reason(reason):
    """Fit free-text reasons (often supplied by a gateway) into the reason fields."""
    if reason is None:
        return None
    return str(reason)[:_REASON_MAX_LENGTH]


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@fulfillment.value_object(part_of="Order")
class CourierInfo:
    """The courier company and contact handling a delivery."""

    name = String(required=True, max_length=100)
    company = String(max_length=100)
    phone = String(max_length=30)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@fulfillment.entity(part_of="Order")
class OrderItem:
    """A line item, priced at the moment it was added.

    The unit price is captured once and never recalculated, so later catalogue
    price changes do not affect placed orders.
    """

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)


@fulfillment.entity(part_of="Order")
class Payment:
    """A charge against the order total, settled by the payment gateway."""

    payment_type = String(
        choices=PaymentType,
        default=PaymentType.CARD.value,
    )
    amount = Float(required=True, min_value=0.0)
    status = String(
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    external_transaction_id = String(max_length=255)
    failure_reason = String(max_length=_REASON_MAX_LENGTH)
    created_at = DateTime()
    processed_at = DateTime()


@fulfillment.entity(part_of="Order")
class Delivery:
    """Shipment of the order to a destination address via a courier."""

    address = String(required=True, max_length=500)
    courier = ValueObject(CourierInfo)
    status = String(
        choices=DeliveryStatus,
        default=DeliveryStatus.PENDING.value,
    )
    tracking_number = String(max_length=255)
    shipped_at = DateTime()
    delivered_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@fulfillment.aggregate
class Order:
    customer_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.CREATED.value,
    )
    items = HasMany(OrderItem)
    total_amount = Float(default=0.0)
    currency = String(max_length=3, default="USD")
    payment = HasOne(Payment)
    delivery = HasOne(Delivery)
    cancellation_reason = String(max_length=_REASON_MAX_LENGTH)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id, currency="USD"):
        """Open an empty order for a customer."""
        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            currency=currency,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                customer_id=str(customer_id),
                currency=currency,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _touch(self):
        self.updated_at = datetime.now(UTC)
        return self.updated_at

    def _require_payment(self):
        if self.payment is None:
            raise ValidationError({"payment": ["Order has no payment attached"]})
        return self.payment

    def _require_delivery(self):
        if self.delivery is None:
            raise ValidationError({"delivery": ["Order has no delivery attached"]})
        return self.delivery

    def _move_payment(self, target_status):
        payment = self._require_payment()
        current = PaymentStatus(payment.status)
        if target_status not in _PAYMENT_TRANSITIONS[current]:
            raise ValidationError(
                {"payment": [f"Cannot move payment from {current.value} to {target_status.value}"]}
            )
        payment.status = target_status.value
        return payment

    def _move_delivery(self, target_status):
        delivery = self._require_delivery()
        current = DeliveryStatus(delivery.status)
        if target_status not in _DELIVERY_TRANSITIONS[current]:
            raise ValidationError(
                {"delivery": [f"Cannot move delivery from {current.value} to {target_status.value}"]}
            )
        delivery.status = target_status.value
        return delivery

    @property
    def is_cancellable(self):
        return OrderStatus.CANCELLED in _VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # Line items (only while CREATED)
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, unit_price):
        if OrderStatus(self.status) != OrderStatus.CREATED:
            raise ValidationError({"status": ["Items can only be added in Created state"]})
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if unit_price is None or unit_price < 0:
            raise ValidationError({"unit_price": ["Unit price cannot be negative"]})

        item = OrderItem(product_id=product_id, quantity=quantity, unit_price=unit_price)
        self.add_items(item)
        self.total_amount = round(sum(i.unit_price * i.quantity for i in self.items), 2)
        self._touch()

        self.raise_(
            ItemAdded(
                order_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product_id),
                quantity=quantity,
                unit_price=unit_price,
                new_total_amount=self.total_amount,
            )
        )
        return item

    # -------------------------------------------------------------------
    # Payment and delivery attachment
    # -------------------------------------------------------------------
    def attach_payment(self, payment_type=PaymentType.CARD.value, amount=None):
        """Attach a pending payment. A failed payment may be replaced for a retry."""
        if OrderStatus(self.status) not in (OrderStatus.CREATED, OrderStatus.PROCESSING):
            raise ValidationError({"status": [f"Cannot attach a payment in {self.status} state"]})
        if self.payment is not None and PaymentStatus(self.payment.status) != PaymentStatus.FAILED:
            raise ValidationError({"payment": [f"Order already has a {self.payment.status} payment"]})

        payment = Payment(
            payment_type=payment_type,
            amount=self.total_amount if amount is None else amount,
            created_at=datetime.now(UTC),
        )
        self.payment = payment
        self._touch()

        self.raise_(
            PaymentAttached(
                order_id=str(self.id),
                payment_id=str(payment.id),
                payment_type=payment.payment_type,
                amount=payment.amount,
            )
        )
        return payment

    def attach_delivery(self, address, courier_name=None, courier_company=None, courier_phone=None):
        if OrderStatus(self.status) not in (OrderStatus.CREATED, OrderStatus.PROCESSING):
            raise ValidationError({"status": [f"Cannot schedule a delivery in {self.status} state"]})
        if self.delivery is not None and DeliveryStatus(self.delivery.status) != DeliveryStatus.PENDING:
            raise ValidationError({"delivery": ["Delivery has already been handed to the courier"]})

        courier = None
        if courier_name:
            courier = CourierInfo(name=courier_name, company=courier_company, phone=courier_phone)

        delivery = Delivery(address=address, courier=courier)
        self.delivery = delivery
        self._touch()

        self.raise_(
            DeliveryScheduled(
                order_id=str(self.id),
                delivery_id=str(delivery.id),
                address=address,
                courier_name=courier_name,
            )
        )
        return delivery

    # -------------------------------------------------------------------
    # Preconditions checked before calling external capabilities
    # -------------------------------------------------------------------
    def assert_ready_for_payment(self):
        payment = self._require_payment()
        if PaymentStatus(payment.status) != PaymentStatus.PENDING:
            raise ValidationError({"payment": [f"Payment is {payment.status}, expected Pending"]})
        if not _same_amount(payment.amount, self.total_amount):
            raise ValidationError(
                {"amount": [f"Payment amount {payment.amount} does not match order total {self.total_amount}"]}
            )
        if OrderStatus(self.status) != OrderStatus.PROCESSING:
            raise ValidationError({"status": [f"Cannot take payment for an order in {self.status} state"]})

    def assert_ready_for_shipment(self, require_payment=True):
        delivery = self._require_delivery()
        if DeliveryStatus(delivery.status) != DeliveryStatus.PENDING:
            raise ValidationError({"delivery": [f"Delivery is {delivery.status}, expected Pending"]})
        self._assert_can_transition(OrderStatus.IN_DELIVERY)
        if require_payment:
            payment = self._require_payment()
            if PaymentStatus(payment.status) != PaymentStatus.COMPLETED:
                raise ValidationError({"payment": [f"Payment is {payment.status}, expected Completed"]})

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def place(self):
        """Move to Processing once every line item has been reserved."""
        if not self.items:
            raise ValidationError({"items": ["Cannot place an order without items"]})
        self._assert_can_transition(OrderStatus.PROCESSING)
        self.status = OrderStatus.PROCESSING.value
        now = self._touch()

        self.raise_(
            OrderPlaced(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                total_amount=self.total_amount,
                item_count=len(self.items),
                placed_at=now,
            )
        )

    def cancel(self, reason=None):
        reason = _clip_reason(reason)
        previous_status = self.status
        self._assert_can_transition(OrderStatus.CANCELLED)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        now = self._touch()

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=previous_status,
                reason=reason,
                cancelled_at=now,
            )
        )

    def record_payment_success(self, external_transaction_id):
        payment = self._move_payment(PaymentStatus.COMPLETED)
        payment.external_transaction_id = external_transaction_id
        payment.processed_at = self._touch()

        self.raise_(
            PaymentCompleted(
                order_id=str(self.id),
                payment_id=str(payment.id),
                amount=payment.amount,
                external_transaction_id=external_transaction_id,
                completed_at=payment.processed_at,
            )
        )

    def record_payment_failure(self, reason=None):
        reason = _clip_reason(reason)
        payment = self._move_payment(PaymentStatus.FAILED)
        payment.failure_reason = reason
        payment.processed_at = self._touch()

        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                payment_id=str(payment.id),
                reason=reason,
                failed_at=payment.processed_at,
            )
        )

    def record_refund(self):
        payment = self._move_payment(PaymentStatus.REFUNDED)
        now = self._touch()

        self.raise_(
            PaymentRefunded(
                order_id=str(self.id),
                payment_id=str(payment.id),
                amount=payment.amount,
                refunded_at=now,
            )
        )

    def record_shipment(self, tracking_number):
        """Courier accepted the parcel: delivery Shipped, order In_Delivery."""
        if not tracking_number:
            raise ValidationError({"tracking_number": ["Tracking number is required"]})
        self._assert_can_transition(OrderStatus.IN_DELIVERY)
        delivery = self._move_delivery(DeliveryStatus.SHIPPED)
        delivery.tracking_number = tracking_number
        self.status = OrderStatus.IN_DELIVERY.value
        delivery.shipped_at = self._touch()

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                delivery_id=str(delivery.id),
                tracking_number=tracking_number,
                shipped_at=delivery.shipped_at,
            )
        )

    def update_delivery_status(self, new_status):
        """Record an intermediate courier status (In_Transit or Returned)."""
        target = DeliveryStatus(new_status)
        if target == DeliveryStatus.DELIVERED:
            raise ValidationError({"delivery": ["Use mark_delivered to complete a delivery"]})
        previous = self._require_delivery().status
        if previous == target.value:
            return
        delivery = self._move_delivery(target)
        now = self._touch()

        self.raise_(
            DeliveryStatusUpdated(
                order_id=str(self.id),
                delivery_id=str(delivery.id),
                previous_status=previous,
                new_status=target.value,
                updated_at=now,
            )
        )

    def mark_delivered(self):
        self._assert_can_transition(OrderStatus.DELIVERED)
        delivery = self._move_delivery(DeliveryStatus.DELIVERED)
        self.status = OrderStatus.DELIVERED.value
        delivery.delivered_at = self._touch()

        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                delivery_id=str(delivery.id),
                delivered_at=delivery.delivered_at,
            )
        )
