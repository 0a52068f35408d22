"""Domain events for the payment vault and the transaction ledger."""

from protean.fields import Boolean, DateTime, Float, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="PaymentVault")
class PaymentMethodAdded:
    __version__ = 1

    vault_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    payment_method_id = Identifier(required=True)
    method_type = String(required=True)
    last_four = String()
    is_default = Boolean(required=True)


@ordering.event(part_of="PaymentVault")
class DefaultPaymentMethodChanged:
    __version__ = 1

    vault_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    payment_method_id = Identifier(required=True)
    previous_default_id = Identifier()


@ordering.event(part_of="PaymentVault")
class PaymentMethodRemoved:
    __version__ = 1

    vault_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    payment_method_id = Identifier(required=True)
    promoted_default_id = Identifier()


@ordering.event(part_of="Transaction")
class TransactionCompleted:
    """The gateway settled a charge or a refund."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    gateway_transaction_id = String(required=True)
    processed_at = DateTime(required=True)


@ordering.event(part_of="Transaction")
class TransactionFailed:
    __version__ = 1

    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    failure_reason = String(required=True)
    processed_at = DateTime(required=True)


@ordering.event(part_of="Transaction")
class TransactionRefunded:
    """A settled charge was refunded, fully or in part."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    refund_amount = Float(required=True)
    refunded_at = DateTime(required=True)
