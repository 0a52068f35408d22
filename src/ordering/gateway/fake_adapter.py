"""Mock payment gateway used in development and tests.

No external calls are made. Charges and refunds succeed unless the gateway
has been told otherwise through ``configure`` (also reachable over HTTP at
``/payments/gateway/configure`` outside production).
"""

from uuid import uuid4

from ordering.gateway.port import ChargeResult, PaymentGateway, RefundResult


class FakeGateway(PaymentGateway):
    name = "MOCK"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def charge(
        self,
        amount: float,
        payment_token: str,
        method_type: str,
        idempotency_key: str,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "charge",
                "amount": amount,
                "payment_token": payment_token,
                "method_type": method_type,
                "idempotency_key": idempotency_key,
            }
        )

        if self.should_succeed:
            return ChargeResult(
                success=True,
                gateway_transaction_id=f"TXN-{uuid4().hex[:8]}",
                gateway_response="MOCK: Payment successful",
            )
        return ChargeResult(
            success=False,
            gateway_response=f"MOCK: {self.failure_reason}",
            failure_reason=self.failure_reason,
        )

    def refund(
        self,
        gateway_transaction_id: str,
        amount: float,
        reason: str | None = None,
    ) -> RefundResult:
        self.calls.append(
            {
                "method": "refund",
                "gateway_transaction_id": gateway_transaction_id,
                "amount": amount,
                "reason": reason,
            }
        )

        if self.should_succeed:
            return RefundResult(
                success=True,
                gateway_refund_id=f"RFD-{uuid4().hex[:8]}",
                gateway_response="MOCK: Refund successful",
            )
        return RefundResult(
            success=False,
            gateway_response=f"MOCK: {self.failure_reason}",
            failure_reason=self.failure_reason,
        )
