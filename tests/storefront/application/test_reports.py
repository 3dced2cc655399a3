"""Read queries behind the staff reports."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from storefront.catalogue.management import RestockProduct
from storefront.catalogue.product import Product
from storefront.checkout.orchestrator import settle
from storefront.checkout.sources import ManualSource
from storefront.sale.fulfillment import UpdateSaleState
from storefront.sale.sale import Sale


def sell(*lines, **kwargs):
    items = [{"product_id": pid, "quantity": qty, "price": 10.0} for pid, qty in lines]
    return settle(ManualSource("admin10", items, **kwargs))


@pytest.fixture(autouse=True)
def shop(stocked_product, staff):
    for product_id in ("P1", "P2", "P3", "P4", "P5"):
        stocked_product(product_id, stock=50)
    staff()


class TestRevenue:
    def test_sums_paid_and_delivered_sales(self):
        sell(("P1", 2))
        sell(("P2", 1), state="entregado")

        assert current_domain.repository_for(Sale).revenue("10") == 30.0

    def test_pending_and_cancelled_sales_do_not_count(self):
        sell(("P1", 2), state="pendiente")
        cancelled = sell(("P2", 1))
        current_domain.process(
            UpdateSaleState(sale_id=str(cancelled.id), project_id="10", state="cancelado"),
            asynchronous=False,
        )

        assert current_domain.repository_for(Sale).revenue("10") == 0.0

    def test_other_projects_are_excluded(self):
        sell(("P1", 2))
        assert current_domain.repository_for(Sale).revenue("20") == 0.0


class TestTopSellers:
    def test_ranked_by_quantity_and_capped(self):
        sell(("P1", 1), ("P2", 5))
        sell(("P3", 3), ("P4", 1))
        sell(("P5", 4), ("P1", 1))

        ranking = current_domain.repository_for(Sale).top_sellers("10")

        assert ranking == [("P2", 5.0), ("P5", 4.0), ("P3", 3.0), ("P1", 2.0)]

    def test_old_sales_fall_out_of_the_window(self):
        sell(("P1", 1))
        later = datetime.now(UTC) + timedelta(days=31)
        assert current_domain.repository_for(Sale).top_sellers("10", now=later) == []


class TestPurchaseHistory:
    def test_newest_first(self, customer):
        customer()
        first = sell(("P1", 1), customer_email="ana@example.com")
        second = sell(("P2", 1), customer_email="ana@example.com")
        sell(("P3", 1))

        history = current_domain.repository_for(Sale).by_customer(customer_email="ana@example.com")

        assert [s.id for s in history] == [second.id, first.id]

    def test_matched_by_directory_id(self, customer):
        record = customer(dni="11223344")
        sale = sell(("P1", 1), customer_dni="11223344")

        history = current_domain.repository_for(Sale).by_customer(customer_id=str(record.id))

        assert [s.id for s in history] == [sale.id]


class TestLowStock:
    def test_products_under_the_ratio(self):
        sell(("P1", 45))
        sell(("P2", 10))

        low = current_domain.repository_for(Product).low_stock("10", ratio=0.2)

        assert [str(product.id) for product, _ in low] == ["P1"]

    def test_restock_resets_the_reference(self):
        sell(("P1", 45))
        current_domain.process(RestockProduct(product_id="P1", project_id="10", delta=1), asynchronous=False)

        assert current_domain.repository_for(Product).low_stock("10", ratio=0.2) == []


class TestLongHistories:
    SALES = 105

    @pytest.fixture()
    def many_sales(self):
        repo = current_domain.repository_for(Sale)
        for nro in range(1, self.SALES + 1):
            repo.add(
                Sale.record(
                    project_id="10",
                    nro=nro,
                    items=[{"product_id": "P1", "quantity": 1, "price": 10.0}],
                    state="pagado",
                    origin="tienda",
                    customer_email="ana@example.com",
                )
            )

    def test_project_listing_is_complete(self, many_sales):
        sales = current_domain.repository_for(Sale).by_project("10")

        assert len(sales) == self.SALES
        assert sales[0].nro == self.SALES

    def test_revenue_counts_every_sale(self, many_sales):
        assert current_domain.repository_for(Sale).revenue("10") == 1050.0

    def test_customer_history_is_complete(self, many_sales):
        history = current_domain.repository_for(Sale).by_customer(customer_email="ana@example.com")
        assert len(history) == self.SALES

    def test_catalogue_scan_is_complete(self, stocked_product):
        for index in range(self.SALES):
            stocked_product(f"X{index}", stock=50)

        assert len(current_domain.repository_for(Product).sold_by_project("10")) == self.SALES + 5
