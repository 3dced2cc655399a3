"""Product aggregate (CQRS) — shared product definition with per-project stock.

A product is defined once and sold by any number of projects (tenants). Each
project keeps its own prices and stock in a ``ProjectDetail`` entry:

    stock:            authoritative on-hand quantity for the project
    wholesale_stock:  reference level (``stockmayor``) reset to ``stock`` on
                      every staff restock; sales leave it untouched, which is
                      what makes the low-stock report meaningful

Stock changes go through ``apply_delta``, a conditional update that refuses to
take a detail below zero. It is atomic per product document, never across the
products of one sale; the checkout saga covers the rest.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, String, Text

from storefront.catalogue.events import (
    ProductCreated,
    ProjectDetailAdded,
    StockRestocked,
    StockRestored,
    StockWithdrawn,
)
from storefront.domain import storefront


def _qty(value):
    return round(float(value), 3)


@storefront.entity(part_of="Product")
class ProjectDetail:
    project_id = Identifier(required=True)
    purchase_price = Float(min_value=0.0, default=0.0)
    sale_price = Float(min_value=0.0, default=0.0)
    unit_id = Identifier()
    stock = Float(min_value=0.0, default=0.0)
    wholesale_stock = Float(min_value=0.0, default=0.0)


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    brand = String(max_length=255)
    description = Text()
    image = String(max_length=1024)
    category_ids = Text(required=True)  # JSON array of category ids
    details = HasMany(ProjectDetail)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def product_must_belong_to_a_category(self):
        if not self.categories:
            raise ValidationError({"category_ids": ["El producto debe tener al menos una categoría"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, name, category_ids, brand=None, description=None, image=None, product_id=None):
        now = datetime.now(UTC)
        kwargs = {}
        if product_id:
            kwargs["id"] = product_id
        product = cls(
            name=name,
            brand=brand,
            description=description,
            image=image,
            category_ids=json.dumps(list(category_ids or [])),
            created_at=now,
            updated_at=now,
            **kwargs,
        )
        product.raise_(
            ProductCreated(
                product_id=str(product.id),
                name=name,
                brand=brand,
                created_at=now,
            )
        )
        return product

    @property
    def categories(self):
        return json.loads(self.category_ids) if self.category_ids else []

    # -------------------------------------------------------------------
    # Project details
    # -------------------------------------------------------------------
    def find_project_detail(self, project_id):
        """Return the detail entry of ``project_id``, or None."""
        return next(
            (d for d in (self.details or []) if str(d.project_id).strip() == str(project_id).strip()),
            None,
        )

    def add_project_detail(self, project_id, purchase_price, sale_price, stock, unit_id=None):
        if self.find_project_detail(project_id) is not None:
            raise ValidationError({"project_id": ["El producto ya tiene detalle para este proyecto"]})

        stock = _qty(stock)
        self.add_details(
            ProjectDetail(
                project_id=str(project_id),
                purchase_price=purchase_price,
                sale_price=sale_price,
                unit_id=unit_id,
                stock=stock,
                wholesale_stock=stock,
            )
        )
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProjectDetailAdded(
                product_id=str(self.id),
                project_id=str(project_id),
                sale_price=sale_price,
                stock=stock,
            )
        )

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def apply_delta(self, project_id, delta, mirror_wholesale=False):
        """Add ``delta`` to the project's stock, refusing to go below zero.

        Returns ``(previous_stock, new_stock)``.
        """
        detail = self.find_project_detail(project_id)
        if detail is None:
            raise ValidationError({"project_id": ["No se encontró detalle de proyecto para este producto."]})

        previous = _qty(detail.stock or 0)
        new_stock = _qty(previous + float(delta))
        if new_stock < 0:
            raise ValidationError({"stock": [f"Stock insuficiente para el producto: {self.id}"]})

        detail.stock = new_stock
        if mirror_wholesale:
            detail.wholesale_stock = new_stock
        self.updated_at = datetime.now(UTC)
        return previous, new_stock

    def restock(self, project_id, delta):
        """Staff stock change: both quantities end up at the new total."""
        previous, new_stock = self.apply_delta(project_id, delta, mirror_wholesale=True)
        self.raise_(
            StockRestocked(
                product_id=str(self.id),
                project_id=str(project_id),
                delta=float(delta),
                previous_stock=previous,
                new_stock=new_stock,
                restocked_at=datetime.now(UTC),
            )
        )

    def withdraw(self, project_id, quantity, sale_id):
        """Take ``quantity`` off the shelf for a sale."""
        if quantity is None or float(quantity) <= 0:
            raise ValidationError({"quantity": ["Stock o cantidad inválida"]})

        previous, new_stock = self.apply_delta(project_id, -float(quantity))
        self.raise_(
            StockWithdrawn(
                product_id=str(self.id),
                project_id=str(project_id),
                sale_id=str(sale_id),
                quantity=_qty(quantity),
                previous_stock=previous,
                new_stock=new_stock,
            )
        )

    def restore(self, project_id, quantity, sale_id, reason):
        """Put back stock withdrawn for ``sale_id``."""
        _, new_stock = self.apply_delta(project_id, float(quantity))
        self.raise_(
            StockRestored(
                product_id=str(self.id),
                project_id=str(project_id),
                sale_id=str(sale_id),
                quantity=_qty(quantity),
                new_stock=new_stock,
                reason=reason,
            )
        )
