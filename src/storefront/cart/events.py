"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Cart")
class CartOpened:
    """A pending cart was opened for a customer in a project."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_email = String(required=True)
    project_id = Identifier(required=True)
    opened_at = DateTime(required=True)


@storefront.event(part_of="Cart")
class CartContentsReplaced:
    """The whole item list and total of a pending cart were overwritten."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
