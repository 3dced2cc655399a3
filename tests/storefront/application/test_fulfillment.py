"""Sale state changes after checkout, including cancellation restocks."""

from unittest.mock import patch

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.catalogue.product import Product
from storefront.checkout import orchestrator
from storefront.checkout.orchestrator import settle
from storefront.checkout.sources import ManualSource
from storefront.exceptions import BusinessRuleViolation, InvalidInput, NotAuthorized, NotFound
from storefront.sale.fulfillment import UpdateSaleState
from storefront.sale.sale import Sale, SaleState


def stock_of(product_id="P1"):
    return current_domain.repository_for(Product).get(product_id).find_project_detail("10").stock


def update(sale_id, state, project_id="10", reason=None):
    return current_domain.process(
        UpdateSaleState(sale_id=sale_id, project_id=project_id, state=state, reason=reason),
        asynchronous=False,
    )


@pytest.fixture()
def sale(stocked_product, staff):
    stocked_product("P1", stock=5)
    staff()
    return settle(ManualSource("admin10", [{"product_id": "P1", "quantity": 2, "price": 10.0}], state="pagado"))


class TestSaleProgress:
    def test_move_to_delivery(self, sale):
        update(str(sale.id), "para entrega")
        assert current_domain.repository_for(Sale).get(sale.id).state == SaleState.FOR_DELIVERY.value

    def test_delivered_is_final(self, sale):
        update(str(sale.id), "entregado")
        with pytest.raises(ValidationError):
            update(str(sale.id), "cancelado")

    def test_unknown_state(self, sale):
        with pytest.raises(InvalidInput):
            update(str(sale.id), "perdido")

    def test_unknown_sale(self):
        with pytest.raises(NotFound):
            update("missing", "entregado")

    def test_sale_of_another_project(self, sale):
        with pytest.raises(NotAuthorized):
            update(str(sale.id), "entregado", project_id="20")


class TestCancellation:
    def test_cancelling_restores_stock(self, sale):
        assert stock_of() == 3

        update(str(sale.id), "cancelado", reason="Cliente desistió")

        assert stock_of() == 5
        cancelled = current_domain.repository_for(Sale).get(sale.id)
        assert cancelled.state == SaleState.CANCELLED.value
        assert not cancelled.counts_as_revenue

    def test_cancelling_twice_is_refused(self, sale):
        update(str(sale.id), "cancelado")
        with pytest.raises(ValidationError):
            update(str(sale.id), "cancelado")
        assert stock_of() == 5

    def test_settlement_in_flight_cannot_be_cancelled(self, stocked_product, staff):
        stocked_product("P1", stock=5)
        staff()
        with patch.object(orchestrator, "_drive", side_effect=RuntimeError("proceso terminado")):
            with pytest.raises(RuntimeError):
                settle(ManualSource("admin10", [{"product_id": "P1", "quantity": 2, "price": 10.0}]))

        pending = current_domain.repository_for(Sale)._dao.query.all().first
        with pytest.raises(BusinessRuleViolation):
            update(str(pending.id), "cancelado")
        assert stock_of() == 5
