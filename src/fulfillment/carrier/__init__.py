"""Carrier adapter abstraction — pluggable courier integration."""

from fulfillment.carrier.port import CarrierPort


def get_carrier(name: str = "fake") -> CarrierPort:
    """Return a new carrier adapter for the configured name."""
    if name == "fake":
        from fulfillment.carrier.fake_adapter import FakeCarrier

        return FakeCarrier()
    raise ValueError(f"Unknown carrier adapter: {name}")
