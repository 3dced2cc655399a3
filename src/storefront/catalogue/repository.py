"""Repository for the Product aggregate."""

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.repository(part_of=Product)
class ProductRepository:
    def sold_by_project(self, project_id: str) -> list[Product]:
        """Products that carry a detail entry for ``project_id``."""
        products = self._dao.query.limit(None).all().items
        return [p for p in products if p.find_project_detail(project_id) is not None]

    def low_stock(self, project_id: str, ratio: float) -> list[tuple[Product, object]]:
        """(product, detail) pairs whose stock fell under ``ratio`` of the reference level."""
        result = []
        for product in self.sold_by_project(project_id):
            detail = product.find_project_detail(project_id)
            reference = detail.wholesale_stock or 0
            if reference > 0 and (detail.stock or 0) < reference * ratio:
                result.append((product, detail))
        return result
