"""Fulfillment bounded context — Order Placement, Stock Reservation and Delivery Handoff.

Drives an order from placement through multi-warehouse stock reservation,
payment collection and courier handoff. Payment gateways and couriers are
external capabilities reached through ports in `fulfillment.gateway` and
`fulfillment.carrier`.
"""

from protean.domain import Domain

from fulfillment.utils.logging import configure_logging

# Configure logging for the application
configure_logging()

# Domain Composition Root
fulfillment = Domain(name="fulfillment")
