"""Payment gateway port.

The payment and refund processors talk to settlement only through this
interface, so the mock adapter can be replaced by a real processor without
touching the order state machine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ChargeResult:
    success: bool
    gateway_transaction_id: str | None = None
    gateway_response: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    success: bool
    gateway_refund_id: str | None = None
    gateway_response: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    #: Recorded on every Transaction the gateway settles
    name: str = "UNKNOWN"

    @abstractmethod
    def charge(
        self,
        amount: float,
        payment_token: str,
        method_type: str,
        idempotency_key: str,
    ) -> ChargeResult:
        """Charge ``amount`` USD to the tokenized payment method."""
        ...

    @abstractmethod
    def refund(
        self,
        gateway_transaction_id: str,
        amount: float,
        reason: str | None = None,
    ) -> RefundResult:
        """Return ``amount`` USD of a previous charge to the payer."""
        ...
