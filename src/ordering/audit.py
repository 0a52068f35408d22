"""Audit trail for order and payment lifecycle events.

Runs after the originating unit of work has committed; a failure here
never affects the order itself. Notification delivery subscribes to the
same events outside this service.
"""

import structlog
from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.order.events import (
    ItemFulfillmentAdvanced,
    OrderCancelled,
    OrderCompleted,
    OrderDelivered,
    OrderPaid,
    OrderPlaced,
    OrderProcessing,
    OrderRefunded,
    OrderShipped,
)
from ordering.order.order import Order
from ordering.payment.events import TransactionCompleted, TransactionFailed, TransactionRefunded
from ordering.payment.transaction import Transaction

logger = structlog.get_logger("ordering.audit")


@ordering.event_handler(part_of=Order)
class OrderAuditEventHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        logger.info(
            "order_placed",
            order_id=str(event.order_id),
            buyer_id=str(event.buyer_id),
            delivery_method=event.delivery_method,
            total_amount=event.total_amount,
        )

    @handle(OrderPaid)
    def on_order_paid(self, event: OrderPaid) -> None:
        logger.info(
            "order_paid",
            order_id=str(event.order_id),
            order_number=event.order_number,
            total_amount=event.total_amount,
        )

    @handle(OrderProcessing)
    def on_order_processing(self, event: OrderProcessing) -> None:
        logger.info("order_processing", order_id=str(event.order_id))

    @handle(OrderShipped)
    def on_order_shipped(self, event: OrderShipped) -> None:
        logger.info(
            "order_shipped",
            order_id=str(event.order_id),
            tracking_number=event.tracking_number,
        )

    @handle(OrderDelivered)
    def on_order_delivered(self, event: OrderDelivered) -> None:
        logger.info("order_delivered", order_id=str(event.order_id))

    @handle(OrderCompleted)
    def on_order_completed(self, event: OrderCompleted) -> None:
        logger.info("order_completed", order_id=str(event.order_id))

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        logger.info(
            "order_cancelled",
            order_id=str(event.order_id),
            previous_status=event.previous_status,
            cancelled_by=str(event.cancelled_by) if event.cancelled_by else None,
            reason=event.reason,
        )

    @handle(OrderRefunded)
    def on_order_refunded(self, event: OrderRefunded) -> None:
        logger.info(
            "order_refunded",
            order_id=str(event.order_id),
            previous_status=event.previous_status,
            refund_amount=event.refund_amount,
        )

    @handle(ItemFulfillmentAdvanced)
    def on_item_fulfillment_advanced(self, event: ItemFulfillmentAdvanced) -> None:
        logger.info(
            "item_fulfillment_advanced",
            order_id=str(event.order_id),
            item_id=str(event.item_id),
            seller_id=str(event.seller_id),
            previous_status=event.previous_status,
            new_status=event.new_status,
        )


@ordering.event_handler(part_of=Transaction)
class TransactionAuditEventHandler:
    @handle(TransactionCompleted)
    def on_transaction_completed(self, event: TransactionCompleted) -> None:
        logger.info(
            "transaction_completed",
            transaction_id=str(event.transaction_id),
            order_id=str(event.order_id),
            amount=event.amount,
            gateway_transaction_id=event.gateway_transaction_id,
        )

    @handle(TransactionFailed)
    def on_transaction_failed(self, event: TransactionFailed) -> None:
        logger.warning(
            "transaction_failed",
            transaction_id=str(event.transaction_id),
            order_id=str(event.order_id),
            reason=event.failure_reason,
        )

    @handle(TransactionRefunded)
    def on_transaction_refunded(self, event: TransactionRefunded) -> None:
        logger.info(
            "transaction_refunded",
            transaction_id=str(event.transaction_id),
            order_id=str(event.order_id),
            refund_amount=event.refund_amount,
        )
