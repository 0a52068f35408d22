"""Cart item management: commands and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.cart.management import existing_cart, get_or_open_cart, save_cart
from ordering.catalogue import get_catalogue
from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class AddToCart:
    buyer_id = Identifier(required=True)
    university_id = Identifier()
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="Order")
class UpdateCartQuantity:
    """Set a line's quantity. Zero or a negative number removes the line."""

    buyer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)


@ordering.command(part_of="Order")
class RemoveFromCart:
    buyer_id = Identifier(required=True)
    item_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = get_catalogue().get_product(command.product_id)
        if product is None:
            raise ObjectNotFoundError({"_entity": f"Product {command.product_id} not found"})

        repo = current_domain.repository_for(Order)
        cart = get_or_open_cart(repo, command.buyer_id, command.university_id)
        cart.add_item(product, command.quantity)
        save_cart(repo, cart)
        return str(cart.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(Order)
        cart = existing_cart(repo, command.buyer_id)
        cart.update_item_quantity(item_id=command.item_id, new_quantity=command.quantity)
        repo.add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Order)
        cart = existing_cart(repo, command.buyer_id)
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)
        return str(cart.id)
