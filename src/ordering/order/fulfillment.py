"""Per-line fulfillment: sellers advance the lines they sold.

Line status moves independently of the order status. An order with items
from several sellers is shipped line by line; the order itself can only
be completed once every live line has been delivered.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.lifecycle import FulfillmentStatus
from ordering.order.order import Order


@ordering.command(part_of="Order")
class AdvanceItemFulfillment:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    status = String(required=True, choices=FulfillmentStatus)


@ordering.command_handler(part_of=Order)
class ItemFulfillmentHandler:
    @handle(AdvanceItemFulfillment)
    def advance_item(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.advance_item(
            item_id=command.item_id,
            seller_id=command.seller_id,
            target=command.status,
        )
        repo.add(order)
