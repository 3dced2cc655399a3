"""Cart management — commands and handler.

Opening is get-or-create on (customer, project): the pending cart is looked up
before a new one is made, so repeated calls return the same cart.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.domain import storefront
from storefront.exceptions import NotFound

MISSING_CART_MESSAGE = "No existe un carrito pendiente para este usuario y proyecto"


@storefront.command(part_of="Cart")
class OpenCart:
    customer_email = String(required=True, max_length=255)
    project_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class ReplaceCartContents:
    """Overwrite the whole item list and total of the pending cart."""

    customer_email = String(required=True, max_length=255)
    project_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, price, name?, unit?}
    total = Float(required=True)


@storefront.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(OpenCart)
    def open_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.pending_for(command.customer_email, command.project_id)
        if cart is None:
            cart = Cart.open(command.customer_email, command.project_id)
            repo.add(cart)
        return str(cart.id)

    @handle(ReplaceCartContents)
    def replace_contents(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.pending_for(command.customer_email, command.project_id)
        if cart is None:
            raise NotFound(MISSING_CART_MESSAGE)

        items = json.loads(command.items) if isinstance(command.items, str) else command.items
        cart.replace_contents(items, command.total)
        repo.add(cart)
        return str(cart.id)
