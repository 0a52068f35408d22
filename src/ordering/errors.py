"""Failure kinds raised by the ordering domain.

All of them derive from Protean's exception hierarchy so that command
handlers roll back their unit of work and the API layer can translate them
into structured responses.
"""

from protean.exceptions import (
    InvalidOperationError,
    ObjectNotFoundError,
    ProteanException,
    ValidationError,
)


class InvalidTransition(InvalidOperationError):
    """A lifecycle transition was requested from a state that does not allow it."""

    def __init__(self, from_status: str, to_status: str, message: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.message = message or f"Cannot transition from {from_status} to {to_status}"
        super().__init__({"status": [self.message]})


class Unauthorized(ProteanException):
    """The acting principal may not perform the operation."""

    def __init__(self, message: str):
        self.message = message
        super().__init__({"actor": [message]})


class GatewayFailure(ProteanException):
    """The payment gateway declined a charge or refund."""

    def __init__(self, reason: str, transaction_id: str | None = None):
        self.reason = reason
        self.transaction_id = transaction_id
        super().__init__({"gateway": [reason]})


class EmptyCart(ValidationError):
    def __init__(self):
        super().__init__({"cart": ["Cart is empty"]})


class ProductUnavailable(ValidationError):
    def __init__(self, product_title: str):
        self.product_title = product_title
        super().__init__({"product": [f"Product {product_title} is no longer available"]})


class RefundExceedsOriginal(ValidationError):
    def __init__(self, refund_amount: float, original_amount: float):
        self.refund_amount = refund_amount
        self.original_amount = original_amount
        super().__init__(
            {"refund_amount": [f"Refund amount {refund_amount:.2f} exceeds original payment {original_amount:.2f}"]}
        )


class NoSettlementFound(ObjectNotFoundError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__({"_entity": f"No completed payment found for order {order_id}"})
