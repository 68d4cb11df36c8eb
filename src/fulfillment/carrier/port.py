"""Carrier port — abstract interface for courier integrations.

All courier adapters must implement this interface. The orchestrator
programs against the port; adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod


class CarrierPort(ABC):
    """Abstract interface for courier adapters."""

    @abstractmethod
    def create_shipment(self, delivery) -> str | None:
        """Hand a delivery to the courier.

        Returns:
            the tracking number, or None/"" when the courier rejected it
        """
        ...

    @abstractmethod
    def get_tracking_status(self, tracking_number: str) -> str:
        """Current courier status for a tracking number (e.g. "In_Transit")."""
        ...
