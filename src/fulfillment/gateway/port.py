"""Payment gateway port (abstract interface).

The orchestrator programs against this contract; adapters are chosen when
the OrderService is built. Each payment attempt results in exactly one
process_payment call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ChargeResult:
    """Result of a payment charge attempt."""

    success: bool
    external_transaction_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    gateway_refund_id: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def process_payment(self, payment) -> ChargeResult:
        """Charge the payment's amount. Only a successful result carries a transaction id."""
        ...

    @abstractmethod
    def refund_payment(self, payment) -> RefundResult:
        """Refund a previously completed payment."""
        ...
