"""Domain events for the Order aggregate.

Each event is an immutable fact about a state change on an order, its
payment or its delivery.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from fulfillment.domain import fulfillment


@fulfillment.event(part_of="Order")
class OrderCreated:
    """An empty order was opened for a customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    currency = String(default="USD")
    created_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class ItemAdded:
    """A line item was added while the order was still in Created state."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price = Float(required=True)
    new_total_amount = Float(required=True)


@fulfillment.event(part_of="Order")
class OrderPlaced:
    """All line items were reserved and the order moved to Processing."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    total_amount = Float(required=True)
    item_count = Integer(required=True)
    placed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(max_length=500)
    cancelled_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class PaymentAttached:
    """A payment was attached to the order, awaiting processing."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    payment_type = String(required=True)
    amount = Float(required=True)


@fulfillment.event(part_of="Order")
class PaymentCompleted:
    """The payment gateway accepted the charge."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    amount = Float(required=True)
    external_transaction_id = String(required=True)
    completed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class PaymentFailed:
    """The payment gateway declined the charge."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    reason = String(max_length=500)
    failed_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class PaymentRefunded:
    """A completed payment was refunded through the gateway."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = Identifier(required=True)
    amount = Float(required=True)
    refunded_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class DeliveryScheduled:
    """A delivery destination was attached to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivery_id = Identifier(required=True)
    address = String(required=True)
    courier_name = String()


@fulfillment.event(part_of="Order")
class OrderShipped:
    """The courier accepted the shipment and issued a tracking number."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivery_id = Identifier(required=True)
    tracking_number = String(required=True)
    shipped_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class DeliveryStatusUpdated:
    """The courier reported a new status for an in-flight delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivery_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    updated_at = DateTime(required=True)


@fulfillment.event(part_of="Order")
class OrderDelivered:
    """The courier confirmed final delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivery_id = Identifier(required=True)
    delivered_at = DateTime(required=True)
