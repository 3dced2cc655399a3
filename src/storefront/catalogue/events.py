"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductCreated:
    """A product was added to the shared catalogue."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    brand = String()
    created_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProjectDetailAdded:
    """A project started selling the product with its own prices and stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    project_id = Identifier(required=True)
    sale_price = Float(required=True)
    stock = Float(required=True)


@storefront.event(part_of="Product")
class StockRestocked:
    """Stock was added (or corrected) by project staff."""

    __version__ = 1

    product_id = Identifier(required=True)
    project_id = Identifier(required=True)
    delta = Float(required=True)
    previous_stock = Float(required=True)
    new_stock = Float(required=True)
    restocked_at = DateTime(required=True)


@storefront.event(part_of="Product")
class StockWithdrawn:
    """Stock left the shelf because of a sale."""

    __version__ = 1

    product_id = Identifier(required=True)
    project_id = Identifier(required=True)
    sale_id = Identifier(required=True)
    quantity = Float(required=True)
    previous_stock = Float(required=True)
    new_stock = Float(required=True)


@storefront.event(part_of="Product")
class StockRestored:
    """Stock withdrawn for a sale was put back (compensation or cancellation)."""

    __version__ = 1

    product_id = Identifier(required=True)
    project_id = Identifier(required=True)
    sale_id = Identifier(required=True)
    quantity = Float(required=True)
    new_stock = Float(required=True)
    reason = String(required=True)
