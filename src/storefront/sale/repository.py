"""Repository and read queries for the Sale aggregate."""

from datetime import UTC, datetime, timedelta

from storefront.domain import storefront
from storefront.sale.sale import Sale, SaleState

TOP_SELLERS_LIMIT = 4
TOP_SELLERS_WINDOW_DAYS = 30


def _aware(moment):
    if moment is None:
        return datetime.min.replace(tzinfo=UTC)
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


def _newest_first(sales):
    return sorted(sales, key=lambda s: (_aware(s.sold_at), s.nro), reverse=True)


@storefront.repository(part_of=Sale)
class SaleRepository:
    def by_project(self, project_id: str) -> list[Sale]:
        return _newest_first(self._dao.query.filter(project_id=str(project_id)).limit(None).all().items)

    def by_customer(self, customer_email: str | None = None, customer_id: str | None = None) -> list[Sale]:
        """Sales made to a customer, matched by email or directory id."""
        sales = {}
        if customer_email:
            for sale in self._dao.query.filter(customer_email=customer_email).limit(None).all().items:
                sales[str(sale.id)] = sale
        if customer_id:
            for sale in self._dao.query.filter(customer_id=str(customer_id)).limit(None).all().items:
                sales[str(sale.id)] = sale
        return _newest_first(sales.values())

    def revenue(self, project_id: str) -> float:
        return round(sum(s.total for s in self.by_project(project_id) if s.counts_as_revenue), 2)

    def top_sellers(self, project_id: str, now: datetime | None = None) -> list[tuple[str, float]]:
        """(product_id, quantity sold) of the best sellers over the recent window."""
        since = (now or datetime.now(UTC)) - timedelta(days=TOP_SELLERS_WINDOW_DAYS)
        totals = {}
        for sale in self.by_project(project_id):
            if SaleState(sale.state) in (SaleState.CANCELLED, SaleState.FAILED):
                continue
            if sale.sold_at is None or _aware(sale.sold_at) < since:
                continue
            for product_id, quantity in sale.line_quantities().items():
                totals[product_id] = round(totals.get(product_id, 0.0) + quantity, 3)

        ranked = sorted(totals.items(), key=lambda pair: pair[1], reverse=True)
        return ranked[:TOP_SELLERS_LIMIT]
