"""Payment processing: charging the buyer for an order awaiting payment.

The flow inside one unit of work:

1. Load the order and check the caller is its buyer.
2. Replay a prior attempt that carries the same idempotency key.
3. Require the order to be PENDING_PAYMENT and the method to be an active,
   unexpired entry of the caller's vault.
4. Record a PENDING transaction and charge it through the gateway port.
5. On success complete the transaction and move the order to PAID. On
   failure record the FAILED transaction and leave the order untouched so
   the buyer can retry.

Concurrent successful attempts against the same order are serialized by
the order's version: the losing unit of work fails with
``ExpectedVersionError`` and nothing it wrote is kept.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.access import ensure_buyer
from ordering.domain import ordering
from ordering.gateway import get_gateway
from ordering.order.lifecycle import OrderStatus, assert_can_transition
from ordering.order.order import Order
from ordering.payment.transaction import Transaction
from ordering.payment.vault import PaymentVault

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Transaction")
class ProcessPayment:
    order_id = Identifier(required=True)
    payment_method_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    idempotency_key = String(max_length=255)


@ordering.command_handler(part_of=Transaction)
class ProcessPaymentHandler:
    @handle(ProcessPayment)
    def process_payment(self, command):
        """Charge the order total. Returns the id of the transaction recorded."""
        order_repo = current_domain.repository_for(Order)
        transaction_repo = current_domain.repository_for(Transaction)

        order = order_repo.get(command.order_id)
        ensure_buyer(order, command.buyer_id, "pay for this order")

        if command.idempotency_key:
            previous = transaction_repo.by_idempotency_key(order.id, command.idempotency_key)
            if previous is not None:
                logger.info(
                    "payment_replayed",
                    order_id=str(order.id),
                    transaction_id=str(previous.id),
                )
                return str(previous.id)

        assert_can_transition(order.current_status, OrderStatus.PAID)

        vault = current_domain.repository_for(PaymentVault).for_owner(command.buyer_id)
        if vault is None:
            raise ObjectNotFoundError({"_entity": f"Payment method {command.payment_method_id} not found"})
        method = vault.active_method(command.payment_method_id)
        if method.is_expired():
            raise ValidationError({"payment_method_id": ["Payment method is expired"]})

        gateway = get_gateway()
        transaction = Transaction.charge(
            order_id=order.id,
            user_id=command.buyer_id,
            payment_method_id=method.id,
            amount=order.total_amount,
            gateway=gateway.name,
            idempotency_key=command.idempotency_key,
        )

        result = gateway.charge(
            amount=transaction.amount,
            payment_token=method.token,
            method_type=method.method_type,
            idempotency_key=str(transaction.id),
        )

        if result.success:
            transaction.mark_completed(
                gateway_transaction_id=result.gateway_transaction_id,
                gateway_response=result.gateway_response,
            )
            order.mark_paid()
            order_repo.add(order)
            logger.info(
                "payment_completed",
                order_id=str(order.id),
                order_number=order.order_number,
                amount=transaction.amount,
            )
        else:
            transaction.mark_failed(
                failure_reason=result.failure_reason,
                gateway_response=result.gateway_response,
            )
            logger.warning(
                "payment_failed",
                order_id=str(order.id),
                reason=result.failure_reason,
            )

        transaction_repo.add(transaction)
        return str(transaction.id)
