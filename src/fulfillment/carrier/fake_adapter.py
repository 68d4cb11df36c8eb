"""Fake carrier adapter — deterministic courier for testing and development.

Generates mock tracking numbers and reports a configurable tracking status.
"""

from uuid import uuid4

from fulfillment.carrier.port import CarrierPort


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.tracking_status = "In_Transit"
        self.shipments: dict[str, str] = {}

    def configure(self, should_succeed: bool = True, tracking_status: str = "In_Transit"):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.tracking_status = tracking_status

    def create_shipment(self, delivery) -> str | None:
        if not self.should_succeed:
            return None

        tracking_number = f"TRK-{uuid4().hex[:8].upper()}"
        self.shipments[tracking_number] = delivery.address
        return tracking_number

    def get_tracking_status(self, tracking_number: str) -> str:
        if tracking_number not in self.shipments:
            return "Unknown"
        return self.tracking_status
