"""Order cancellation: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.access import is_admin, is_buyer
from ordering.domain import ordering
from ordering.errors import Unauthorized
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not (is_buyer(order, command.actor_id) or is_admin(command.actor_role)):
            raise Unauthorized("Only the buyer or an administrator can cancel this order")

        order.cancel(reason=command.reason, cancelled_by=command.actor_id)
        repo.add(order)

        logger.info(
            "order_cancelled",
            order_id=str(order.id),
            cancelled_by=str(command.actor_id),
            was_paid=order.was_paid(),
        )
