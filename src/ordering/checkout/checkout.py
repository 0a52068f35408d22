"""Checkout: freezing a buyer's cart into an order awaiting payment.

Every line is re-validated against the catalogue before the cart is
frozen; the first product that is no longer listed aborts the checkout and
leaves the cart untouched. Stock is not decremented here: availability is
checked on a best-effort basis only.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.catalogue import get_catalogue
from ordering.domain import ordering
from ordering.errors import EmptyCart, ProductUnavailable
from ordering.order.order import Order
from ordering.pricing import DeliveryMethod

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class Checkout:
    buyer_id = Identifier(required=True)
    delivery_method = String(required=True, choices=DeliveryMethod)
    delivery_address_id = Identifier()
    buyer_notes = Text()


def ensure_lines_available(order: Order, catalogue) -> None:
    """Raise ``ProductUnavailable`` for the first line whose listing is gone."""
    for item in order.items:
        product = catalogue.get_product(str(item.product_id))
        if product is None or not product.is_active:
            raise ProductUnavailable(item.product_title)


@ordering.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(Checkout)
    def checkout(self, command):
        repo = current_domain.repository_for(Order)
        cart = repo.cart_for(command.buyer_id)
        if cart is None or not cart.items:
            raise EmptyCart()

        ensure_lines_available(cart, get_catalogue())

        cart.place(
            delivery_method=command.delivery_method,
            delivery_address_id=command.delivery_address_id,
            buyer_notes=command.buyer_notes,
        )
        repo.add(cart)

        logger.info(
            "order_placed",
            order_id=str(cart.id),
            buyer_id=str(command.buyer_id),
            total_amount=cart.total_amount,
        )
        return str(cart.id)
