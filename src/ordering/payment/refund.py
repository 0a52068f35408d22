"""Refund processing: returning money for a settled order.

Only administrators refund. The refund is anchored on the order's
settlement (its COMPLETED charge), is bounded by that charge's amount, and
is written as a new negative transaction. The order moves to REFUNDED
whatever its fulfillment progress.

A refund the gateway refuses is still written to the ledger as a FAILED
entry; the settlement and the order are left as they were.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.access import ensure_admin
from ordering.domain import ordering
from ordering.errors import NoSettlementFound, RefundExceedsOriginal
from ordering.gateway import get_gateway
from ordering.order.lifecycle import OrderStatus, assert_can_transition
from ordering.order.order import Order
from ordering.payment.transaction import Transaction
from ordering.pricing import money

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Transaction")
class ProcessRefund:
    order_id = Identifier(required=True)
    refund_amount = Float(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Transaction)
class ProcessRefundHandler:
    @handle(ProcessRefund)
    def process_refund(self, command):
        ensure_admin(command.actor_role, "issue refunds")

        order_repo = current_domain.repository_for(Order)
        transaction_repo = current_domain.repository_for(Transaction)

        order = order_repo.get(command.order_id)
        amount = money(command.refund_amount)
        if amount <= 0:
            raise ValidationError({"refund_amount": ["Refund amount must be positive"]})

        settlement = transaction_repo.settlement_for(order.id)
        if settlement is None:
            raise NoSettlementFound(str(order.id))
        if amount > money(settlement.amount):
            raise RefundExceedsOriginal(float(amount), settlement.amount)

        assert_can_transition(order.current_status, OrderStatus.REFUNDED, was_paid=order.was_paid())

        gateway = get_gateway()
        refund = Transaction.refund_of(
            settlement,
            refund_amount=amount,
            gateway=gateway.name,
        )
        result = gateway.refund(
            gateway_transaction_id=settlement.gateway_transaction_id,
            amount=float(amount),
            reason=command.reason,
        )
        if not result.success:
            refund.mark_failed(
                failure_reason=result.failure_reason,
                gateway_response=result.gateway_response,
            )
            transaction_repo.add(refund)
            logger.warning(
                "refund_failed",
                order_id=str(order.id),
                refund_transaction_id=str(refund.id),
                reason=result.failure_reason,
            )
            return str(refund.id)

        refund.mark_completed(
            gateway_transaction_id=result.gateway_refund_id,
            gateway_response=result.gateway_response,
        )
        settlement.mark_refunded(amount)
        order.refund(amount)

        transaction_repo.add(refund)
        transaction_repo.add(settlement)
        order_repo.add(order)

        logger.info(
            "refund_issued",
            order_id=str(order.id),
            refund_transaction_id=str(refund.id),
            amount=float(amount),
        )
        return str(refund.id)
