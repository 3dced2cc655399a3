"""Repository for the Cart aggregate."""

from storefront.cart.cart import Cart, CartStatus
from storefront.domain import storefront


@storefront.repository(part_of=Cart)
class CartRepository:
    def pending_for(self, customer_email: str, project_id: str | None = None) -> Cart | None:
        """The pending cart of a customer (in a project, when given), or None."""
        filters = {"customer_email": customer_email, "status": CartStatus.PENDING.value}
        if project_id is not None:
            filters["project_id"] = str(project_id)
        return self._dao.query.filter(**filters).all().first

    def discard(self, cart: Cart) -> None:
        """Delete the cart permanently."""
        for line in list(cart.items or []):
            cart.remove_items(line)
        self.add(cart)
        self._dao.delete(cart)
