"""Configurable fake payment gateway for development and testing.

Simulates a gateway without external calls. It can be configured at runtime
to accept or decline, and records every call it receives.
"""

from uuid import uuid4

from fulfillment.gateway.port import ChargeResult, PaymentGateway, RefundResult


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def process_payment(self, payment) -> ChargeResult:
        self.calls.append(
            {
                "method": "process_payment",
                "payment_id": str(payment.id),
                "amount": payment.amount,
                "payment_type": payment.payment_type,
            }
        )

        if self.should_succeed:
            return ChargeResult(
                success=True,
                external_transaction_id=f"TXN-{uuid4().hex[:12]}",
                gateway_status="succeeded",
            )
        return ChargeResult(
            success=False,
            gateway_status="failed",
            failure_reason=self.failure_reason,
        )

    def refund_payment(self, payment) -> RefundResult:
        self.calls.append(
            {
                "method": "refund_payment",
                "payment_id": str(payment.id),
                "external_transaction_id": payment.external_transaction_id,
                "amount": payment.amount,
            }
        )

        if self.should_succeed:
            return RefundResult(success=True, gateway_refund_id=f"REF-{uuid4().hex[:12]}")
        return RefundResult(success=False, failure_reason=self.failure_reason)
