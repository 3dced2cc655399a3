"""Cart aggregate (CQRS) — the pending order-in-progress of one customer in one project.

A cart is keyed by the customer's email and the project id. At most one
``pendiente`` cart exists per pair; callers go through ``CartRepository``'s
lookup-before-create to keep it that way. The cart is deleted, not archived,
once the checkout saga has turned it into a sale.
"""

from datetime import UTC, datetime
from enum import Enum
from numbers import Number

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, String

from storefront.cart.events import CartContentsReplaced, CartOpened
from storefront.domain import storefront

MIN_QUANTITY = 0.01
MIN_PRICE = 0.01

ITEM_SHAPE_MESSAGE = "Cada producto debe tener producto_id (string), cantidad (>=0.01) y precio (>=0.01)"
TOTAL_MESSAGE = "Productos debe ser un array y total un número mayor o igual a 0"


class CartStatus(Enum):
    PENDING = "pendiente"
    PAID = "pagado"
    CANCELLED = "cancelado"


def _is_number(value):
    return isinstance(value, Number) and not isinstance(value, bool)


@storefront.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    quantity = Float(required=True, min_value=MIN_QUANTITY)
    price = Float(required=True, min_value=MIN_PRICE)
    name = String(max_length=255)
    unit = String(max_length=50)


@storefront.aggregate
class Cart:
    customer_email = String(required=True, max_length=255)
    project_id = Identifier(required=True)
    items = HasMany(CartLine)
    total = Float(min_value=0.0, default=0.0)
    status = String(choices=CartStatus, default=CartStatus.PENDING.value)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def open(cls, customer_email, project_id):
        now = datetime.now(UTC)
        cart = cls(
            customer_email=customer_email,
            project_id=str(project_id),
            total=0.0,
            status=CartStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(
            CartOpened(
                cart_id=str(cart.id),
                customer_email=customer_email,
                project_id=str(project_id),
                opened_at=now,
            )
        )
        return cart

    # -------------------------------------------------------------------
    # Contents
    # -------------------------------------------------------------------
    @staticmethod
    def validate_contents(items, total):
        """Check a full replacement payload without touching any cart."""
        if not isinstance(items, list) or not _is_number(total) or total < 0:
            raise ValidationError({"total": [TOTAL_MESSAGE]})

        for item in items:
            if not isinstance(item, dict):
                raise ValidationError({"items": [ITEM_SHAPE_MESSAGE]})
            product_id = item.get("product_id")
            quantity = item.get("quantity")
            price = item.get("price")
            if (
                not isinstance(product_id, str)
                or not product_id.strip()
                or not _is_number(quantity)
                or quantity < MIN_QUANTITY
                or not _is_number(price)
                or price < MIN_PRICE
            ):
                raise ValidationError({"items": [ITEM_SHAPE_MESSAGE]})

    def replace_contents(self, items, total):
        """Overwrite every line and the total, or change nothing at all."""
        if CartStatus(self.status) != CartStatus.PENDING:
            raise ValidationError({"status": ["Solo se puede modificar un carrito pendiente"]})

        self.validate_contents(items, total)

        for line in list(self.items or []):
            self.remove_items(line)
        for item in items:
            self.add_items(
                CartLine(
                    product_id=item["product_id"],
                    quantity=float(item["quantity"]),
                    price=float(item["price"]),
                    name=item.get("name"),
                    unit=item.get("unit"),
                )
            )
        self.total = float(total)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartContentsReplaced(
                cart_id=str(self.id),
                item_count=len(items),
                total=float(total),
            )
        )

    @property
    def line_total(self):
        """Sum of price × quantity over the lines, rounded to cents."""
        return round(sum(line.price * line.quantity for line in (self.items or [])), 2)

    def snapshot_items(self):
        return [
            {
                "product_id": str(line.product_id),
                "quantity": line.quantity,
                "price": line.price,
            }
            for line in (self.items or [])
        ]
