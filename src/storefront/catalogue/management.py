"""Catalogue management — commands and handler.

Product creation, per-project detail registration and staff restocks.
"""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.exceptions import NotFound


@storefront.command(part_of="Product")
class CreateProduct:
    product_id = Identifier()
    name = String(required=True, max_length=255)
    brand = String(max_length=255)
    description = Text()
    image = String(max_length=1024)
    category_ids = Text(required=True)  # JSON array


@storefront.command(part_of="Product")
class AddProjectDetail:
    product_id = Identifier(required=True)
    project_id = Identifier(required=True)
    purchase_price = Float(required=True, min_value=0.0)
    sale_price = Float(required=True, min_value=0.0)
    stock = Float(required=True, min_value=0.0)
    unit_id = Identifier()


@storefront.command(part_of="Product")
class RestockProduct:
    """Add (or with a negative delta, correct) a project's stock of a product."""

    product_id = Identifier(required=True)
    project_id = Identifier(required=True)
    delta = Float(required=True)


def _load_product(product_id):
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        raise NotFound("Producto no encontrado.")


@storefront.command_handler(part_of=Product)
class ManageCatalogueHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        category_ids = (
            json.loads(command.category_ids) if isinstance(command.category_ids, str) else command.category_ids
        )
        product = Product.create(
            name=command.name,
            category_ids=category_ids,
            brand=command.brand,
            description=command.description,
            image=command.image,
            product_id=command.product_id,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(AddProjectDetail)
    def add_project_detail(self, command):
        product = _load_product(command.product_id)
        product.add_project_detail(
            project_id=command.project_id,
            purchase_price=command.purchase_price,
            sale_price=command.sale_price,
            stock=command.stock,
            unit_id=command.unit_id,
        )
        current_domain.repository_for(Product).add(product)

    @handle(RestockProduct)
    def restock_product(self, command):
        product = _load_product(command.product_id)
        if product.find_project_detail(command.project_id) is None:
            raise NotFound("No existe información de stock para este proyecto en el producto.")

        product.restock(command.project_id, command.delta)
        current_domain.repository_for(Product).add(product)
