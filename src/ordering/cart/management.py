"""Cart management: opening and clearing a buyer's cart.

A buyer has at most one Order in CART status. It is created lazily the
first time the buyer touches their cart.
"""

import structlog
from protean import handle
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


def get_or_open_cart(repo, buyer_id, university_id=None) -> Order:
    cart = repo.cart_for(buyer_id)
    if cart is None:
        cart = Order.open_cart(buyer_id=buyer_id, university_id=university_id)
        logger.info("cart_opened", order_id=str(cart.id), buyer_id=str(buyer_id))
    return cart


def save_cart(repo, cart: Order) -> None:
    """Persist ``cart``.

    A buyer may hold one open cart. When two requests open a cart for the
    same buyer at once, the second insert trips the unique ``open_cart_of``
    field and is reported as a concurrent modification so the caller retries
    against the cart that won.
    """
    try:
        repo.add(cart)
    except ValidationError as exc:
        if not isinstance(exc.messages, dict) or "open_cart_of" not in exc.messages:
            raise
        logger.warning("cart_open_conflict", order_id=str(cart.id), buyer_id=str(cart.buyer_id))
        raise ExpectedVersionError(f"Buyer {cart.buyer_id} already has an open cart") from exc


def existing_cart(repo, buyer_id) -> Order:
    cart = repo.cart_for(buyer_id)
    if cart is None:
        raise ObjectNotFoundError({"_entity": f"No cart found for buyer {buyer_id}"})
    return cart


@ordering.command(part_of="Order")
class OpenCart:
    """Return the buyer's cart, creating an empty one if needed."""

    buyer_id = Identifier(required=True)
    university_id = Identifier()


@ordering.command(part_of="Order")
class ClearCart:
    buyer_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class ManageCartHandler:
    @handle(OpenCart)
    def open_cart(self, command):
        repo = current_domain.repository_for(Order)
        cart = get_or_open_cart(repo, command.buyer_id, command.university_id)
        save_cart(repo, cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Order)
        cart = existing_cart(repo, command.buyer_id)
        cart.clear()
        repo.add(cart)
        return str(cart.id)
