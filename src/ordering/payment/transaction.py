"""Transaction aggregate: one append-only ledger entry per payment attempt.

Charges carry a positive amount, refunds a negative one. A transaction's
status moves out of PENDING exactly once (to COMPLETED or FAILED), and a
completed charge can be marked REFUNDED exactly once.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering
from ordering.errors import InvalidTransition
from ordering.payment.events import TransactionCompleted, TransactionFailed, TransactionRefunded
from ordering.pricing import money


class TransactionStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


@ordering.aggregate
class Transaction:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    payment_method_id = Identifier()
    amount = Float(required=True)
    status = String(choices=TransactionStatus, default=TransactionStatus.PENDING.value)
    payment_gateway = String(max_length=50)
    gateway_transaction_id = String(max_length=100)
    gateway_response = Text()
    failure_reason = String(max_length=500)
    idempotency_key = String(max_length=255)
    processed_at = DateTime()
    refunded_at = DateTime()
    refund_amount = Float()
    created_at = DateTime()

    @classmethod
    def charge(cls, order_id, user_id, payment_method_id, amount, gateway, idempotency_key=None):
        """A pending charge for ``amount``, about to be sent to ``gateway``."""
        return cls(
            order_id=order_id,
            user_id=user_id,
            payment_method_id=payment_method_id,
            amount=float(money(amount)),
            payment_gateway=gateway,
            idempotency_key=idempotency_key,
            status=TransactionStatus.PENDING.value,
            created_at=datetime.now(UTC),
        )

    @classmethod
    def refund_of(cls, original, refund_amount, gateway):
        """A pending refund entry mirroring ``original`` with a negative amount."""
        return cls(
            order_id=original.order_id,
            user_id=original.user_id,
            payment_method_id=original.payment_method_id,
            amount=-float(money(refund_amount)),
            payment_gateway=gateway,
            status=TransactionStatus.PENDING.value,
            created_at=datetime.now(UTC),
        )

    @property
    def current_status(self) -> TransactionStatus:
        return TransactionStatus(self.status)

    def is_settlement(self) -> bool:
        """A completed positive charge: the anchor for refunds."""
        return self.current_status == TransactionStatus.COMPLETED and self.amount > 0

    def _assert_status(self, expected: TransactionStatus, target: TransactionStatus):
        if self.current_status != expected:
            raise InvalidTransition(
                self.status,
                target.value,
                f"Transaction is {self.status}, expected {expected.value}",
            )

    def mark_completed(self, gateway_transaction_id, gateway_response=None):
        self._assert_status(TransactionStatus.PENDING, TransactionStatus.COMPLETED)

        now = datetime.now(UTC)
        self.status = TransactionStatus.COMPLETED.value
        self.gateway_transaction_id = gateway_transaction_id
        self.gateway_response = gateway_response
        self.processed_at = now

        self.raise_(
            TransactionCompleted(
                transaction_id=str(self.id),
                order_id=str(self.order_id),
                amount=self.amount,
                gateway_transaction_id=gateway_transaction_id,
                processed_at=now,
            )
        )

    def mark_failed(self, failure_reason, gateway_response=None):
        self._assert_status(TransactionStatus.PENDING, TransactionStatus.FAILED)

        now = datetime.now(UTC)
        self.status = TransactionStatus.FAILED.value
        self.failure_reason = failure_reason
        self.gateway_response = gateway_response
        self.processed_at = now

        self.raise_(
            TransactionFailed(
                transaction_id=str(self.id),
                order_id=str(self.order_id),
                amount=self.amount,
                failure_reason=failure_reason,
                processed_at=now,
            )
        )

    def mark_refunded(self, refund_amount):
        self._assert_status(TransactionStatus.COMPLETED, TransactionStatus.REFUNDED)
        if self.amount <= 0:
            raise InvalidTransition(self.status, TransactionStatus.REFUNDED.value, "Only charges can be refunded")
        refund = money(refund_amount)
        if refund <= 0:
            raise ValidationError({"refund_amount": ["Refund amount must be positive"]})
        if refund > money(self.amount):
            raise ValidationError({"refund_amount": ["Refund amount cannot exceed the original charge"]})

        now = datetime.now(UTC)
        self.status = TransactionStatus.REFUNDED.value
        self.refund_amount = float(refund)
        self.refunded_at = now

        self.raise_(
            TransactionRefunded(
                transaction_id=str(self.id),
                order_id=str(self.order_id),
                refund_amount=self.refund_amount,
                refunded_at=now,
            )
        )
