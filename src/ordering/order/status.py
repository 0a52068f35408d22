"""Order status progression: commands and handler.

Sellers move a paid order into processing and ship it; delivery may be
confirmed by the buyer, a seller or an administrator; only the buyer
completes the order.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.access import ensure_buyer, ensure_seller, is_admin, is_buyer
from ordering.domain import ordering
from ordering.errors import Unauthorized
from ordering.order.order import Order


@ordering.command(part_of="Order")
class MarkProcessing:
    """A seller has started preparing the order."""

    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)


@ordering.command(part_of="Order")
class MarkShipped:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    tracking_number = String(max_length=100)


@ordering.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(max_length=20)


@ordering.command(part_of="Order")
class CompleteOrder:
    """The buyer confirms they received everything."""

    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(MarkProcessing)
    def mark_processing(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        ensure_seller(order, command.actor_id, "mark this order as processing")
        order.mark_processing(seller_id=command.actor_id)
        repo.add(order)

    @handle(MarkShipped)
    def mark_shipped(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        ensure_seller(order, command.actor_id, "mark this order as shipped")
        order.mark_shipped(
            tracking_number=command.tracking_number,
            seller_id=command.actor_id,
        )
        repo.add(order)

    @handle(MarkDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not (
            is_admin(command.actor_role) or is_buyer(order, command.actor_id) or order.is_seller(command.actor_id)
        ):
            raise Unauthorized("Only the buyer, a seller or an administrator can confirm delivery")
        order.mark_delivered()
        repo.add(order)

    @handle(CompleteOrder)
    def complete_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        ensure_buyer(order, command.actor_id, "complete this order")
        order.complete()
        repo.add(order)
