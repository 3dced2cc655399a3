"""Web checkout: a shopper's pending cart settled into a sale."""

import json

import pytest
from protean import current_domain
from storefront.cart.cart import Cart
from storefront.cart.management import OpenCart, ReplaceCartContents
from storefront.catalogue.product import Product
from storefront.checkout.orchestrator import settle
from storefront.checkout.settlement import Settlement, SettlementStatus
from storefront.checkout.sources import CartSource
from storefront.exceptions import (
    EmptyCart,
    InsufficientStock,
    InvalidTotal,
    MissingProjectDetail,
    NotAuthenticated,
    NotAuthorized,
    NotFound,
    PaymentNotConfirmed,
)
from storefront.payments.intent import IntentStatus, PaymentIntent
from storefront.payments.management import ConfirmPaymentIntent, CreatePaymentIntent
from storefront.sale.sale import Sale, SaleOrigin, SaleState

EMAIL = "ana@example.com"


def fill_cart(items, total, email=EMAIL, project_id="10"):
    current_domain.process(OpenCart(customer_email=email, project_id=project_id), asynchronous=False)
    current_domain.process(
        ReplaceCartContents(customer_email=email, project_id=project_id, items=json.dumps(items), total=total),
        asynchronous=False,
    )


def stock_of(product_id, project_id="10"):
    return current_domain.repository_for(Product).get(product_id).find_project_detail(project_id).stock


def pending_cart(email=EMAIL, project_id="10"):
    return current_domain.repository_for(Cart).pending_for(email, project_id)


def all_sales():
    return current_domain.repository_for(Sale)._dao.query.all().items


class TestSuccessfulWebCheckout:
    @pytest.fixture(autouse=True)
    def setup(self, stocked_product, customer):
        stocked_product("P1", stock=5)
        customer()
        fill_cart([{"product_id": "P1", "quantity": 2, "price": 10.0}], 20.0)

    def test_sale_is_recorded(self):
        sale = settle(CartSource(EMAIL))

        assert sale.total == 20.0
        assert sale.nro == 1
        assert sale.invoice_code == "T10-1"
        assert sale.state == SaleState.FOR_DELIVERY.value
        assert sale.origin == SaleOrigin.WEB.value
        assert sale.payment_type == "mercadopago"
        assert sale.customer_email == EMAIL
        assert sale.customer_id is not None

    def test_stock_is_withdrawn(self):
        settle(CartSource(EMAIL))
        assert stock_of("P1") == 3

    def test_cart_is_removed(self):
        settle(CartSource(EMAIL))
        assert pending_cart() is None

    def test_settlement_completes(self):
        sale = settle(CartSource(EMAIL))

        settlement = current_domain.repository_for(Settlement).get(sale.settlement_id)
        assert settlement.status == SettlementStatus.COMPLETED.value
        assert settlement.applied_quantities == {"P1": 2.0}

    def test_second_checkout_of_the_same_cart_is_refused(self):
        settle(CartSource(EMAIL))

        with pytest.raises(NotFound):
            settle(CartSource(EMAIL))

        assert len(all_sales()) == 1
        assert stock_of("P1") == 3

    def test_sale_total_matches_its_lines(self):
        sale = settle(CartSource(EMAIL))
        assert sale.total == round(sum(line.price * line.quantity for line in sale.items), 2)


class TestRefusedWebCheckout:
    def test_insufficient_stock_changes_nothing(self, stocked_product, customer):
        stocked_product("P1", stock=5)
        customer()
        fill_cart([{"product_id": "P1", "quantity": 6, "price": 10.0}], 60.0)

        with pytest.raises(InsufficientStock) as exc_info:
            settle(CartSource(EMAIL))

        assert exc_info.value.product_id == "P1"
        assert stock_of("P1") == 5
        assert pending_cart().total == 60.0
        assert all_sales() == []

    def test_product_not_sold_by_the_project(self, stocked_product, customer):
        stocked_product("P1", stock=5, project_id="20")
        customer()
        fill_cart([{"product_id": "P1", "quantity": 1, "price": 10.0}], 10.0)

        with pytest.raises(MissingProjectDetail):
            settle(CartSource(EMAIL))

        assert stock_of("P1", project_id="20") == 5
        assert all_sales() == []

    def test_missing_identity(self):
        with pytest.raises(NotAuthenticated):
            CartSource(None)

    def test_customer_without_project(self, customer):
        customer(project_id=None)
        with pytest.raises(NotAuthorized):
            settle(CartSource(EMAIL))

    def test_unknown_customer(self):
        with pytest.raises(NotAuthorized):
            settle(CartSource("nadie@example.com"))

    def test_no_pending_cart(self, customer):
        customer()
        with pytest.raises(NotFound):
            settle(CartSource(EMAIL))

    def test_empty_cart(self, customer):
        customer()
        current_domain.process(OpenCart(customer_email=EMAIL, project_id="10"), asynchronous=False)
        with pytest.raises(EmptyCart):
            settle(CartSource(EMAIL))

    def test_cart_total_that_disagrees_with_lines(self, stocked_product, customer):
        stocked_product("P1", stock=5)
        customer()
        fill_cart([{"product_id": "P1", "quantity": 2, "price": 10.0}], 25.0)

        with pytest.raises(InvalidTotal):
            settle(CartSource(EMAIL))
        assert stock_of("P1") == 5

    def test_aggregated_quantities_are_checked(self, stocked_product, customer):
        stocked_product("P1", stock=5)
        customer()
        fill_cart(
            [
                {"product_id": "P1", "quantity": 3, "price": 10.0},
                {"product_id": "P1", "quantity": 3, "price": 10.0},
            ],
            60.0,
        )

        with pytest.raises(InsufficientStock):
            settle(CartSource(EMAIL))
        assert stock_of("P1") == 5


class TestConfirmedPaymentGate:
    @pytest.fixture(autouse=True)
    def setup(self, stocked_product, customer):
        stocked_product("P1", stock=5)
        customer()
        fill_cart([{"product_id": "P1", "quantity": 2, "price": 10.0}], 20.0)

    def _approved_intent(self, amount=20.0):
        intent_id = current_domain.process(
            CreatePaymentIntent(project_id="10", payer_email=EMAIL, amount=amount, description="Carrito"),
            asynchronous=False,
        )
        intent = current_domain.repository_for(PaymentIntent).get(intent_id)
        current_domain.process(
            ConfirmPaymentIntent(preference_id=intent.preference_id, status="approved"),
            asynchronous=False,
        )
        return intent_id

    def test_refused_without_approved_payment(self):
        with pytest.raises(PaymentNotConfirmed):
            settle(CartSource(EMAIL, require_payment=True))
        assert stock_of("P1") == 5

    def test_refused_when_payment_does_not_cover_cart(self):
        self._approved_intent(amount=15.0)
        with pytest.raises(PaymentNotConfirmed):
            settle(CartSource(EMAIL, require_payment=True))

    def test_approved_payment_is_consumed(self):
        intent_id = self._approved_intent()

        sale = settle(CartSource(EMAIL, require_payment=True))

        intent = current_domain.repository_for(PaymentIntent).get(intent_id)
        assert intent.status == IntentStatus.CONSUMED.value
        assert intent.sale_id == str(sale.id)

    def test_gate_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("REQUIRE_CONFIRMED_PAYMENT", "true")
        with pytest.raises(PaymentNotConfirmed):
            settle(CartSource(EMAIL))
