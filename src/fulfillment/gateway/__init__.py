"""Payment gateway factory.

get_gateway() builds the adapter named in configuration:
- "fake": FakeGateway for development and testing
"""

from fulfillment.gateway.fake_adapter import FakeGateway
from fulfillment.gateway.port import ChargeResult, PaymentGateway, RefundResult

__all__ = ["ChargeResult", "FakeGateway", "PaymentGateway", "RefundResult", "get_gateway"]


def get_gateway(name: str = "fake") -> PaymentGateway:
    """Return a new gateway adapter for the configured name."""
    if name == "fake":
        return FakeGateway()
    raise ValueError(f"Unknown payment gateway: {name}")
