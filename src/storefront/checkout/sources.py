"""Where a sale's lines, customer and defaults come from.

The settlement routine is the same for both channels; a ``SaleSource``
supplies the parts that differ:

    CartSource    web shopper paying their pending cart
    ManualSource  staff keying an in-store sale
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.management import MISSING_CART_MESSAGE
from storefront.checkout.settlement import Channel
from storefront.checkout.steps import normalize_items
from storefront.directory import get_directory
from storefront.exceptions import (
    EmptyCart,
    InvalidInput,
    InvalidTotal,
    NotAuthenticated,
    NotAuthorized,
    NotFound,
    PaymentNotConfirmed,
)
from storefront.payments.intent import PaymentIntent
from storefront.sale.sale import TOTAL_TOLERANCE, SaleState


def payment_confirmation_required() -> bool:
    return os.getenv("REQUIRE_CONFIRMED_PAYMENT", "false").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SettlementRequest:
    """Everything the settlement steps need, resolved up front."""

    project_id: str
    channel: str
    items: list[dict]
    state: str
    payment_type: str | None = None
    customer_id: str | None = None
    customer_email: str | None = None
    cart_id: str | None = None
    payment_intent_id: str | None = None
    declared_total: float | None = None


class SaleSource(ABC):
    channel: str

    @abstractmethod
    def resolve_project(self) -> str:
        """Project that owns the stock and the sale. Fails closed."""
        ...

    @abstractmethod
    def build_request(self, project_id: str) -> SettlementRequest:
        """Collect the lines and customer. Called under the project guard."""
        ...


class CartSource(SaleSource):
    channel = Channel.WEB.value

    def __init__(self, customer_email: str | None, require_payment: bool | None = None) -> None:
        if not customer_email:
            raise NotAuthenticated()
        self.customer_email = customer_email
        self.require_payment = payment_confirmation_required() if require_payment is None else require_payment

    def resolve_project(self) -> str:
        project_id = get_directory().project_for_customer(self.customer_email)
        if not project_id:
            raise NotAuthorized()
        return project_id

    def build_request(self, project_id: str) -> SettlementRequest:
        cart = current_domain.repository_for(Cart).pending_for(self.customer_email, project_id)
        if cart is None:
            raise NotFound(MISSING_CART_MESSAGE)
        if not cart.items:
            raise EmptyCart()

        line_total = cart.line_total
        if not cart.total or cart.total <= 0 or abs(cart.total - line_total) > TOTAL_TOLERANCE:
            raise InvalidTotal("El total del carrito es inválido")

        intent_id = None
        if self.require_payment:
            intent = current_domain.repository_for(PaymentIntent).approved_for(
                self.customer_email, project_id, line_total
            )
            if intent is None:
                raise PaymentNotConfirmed()
            intent_id = str(intent.id)

        return SettlementRequest(
            project_id=project_id,
            channel=self.channel,
            items=normalize_items(cart.snapshot_items()),
            state=SaleState.FOR_DELIVERY.value,
            payment_type="mercadopago",
            customer_id=get_directory().customer_id_for_email(self.customer_email),
            customer_email=self.customer_email,
            cart_id=str(cart.id),
            payment_intent_id=intent_id,
        )


class ManualSource(SaleSource):
    channel = Channel.STORE.value

    def __init__(
        self,
        staff_user: str | None,
        items: list[dict] | None,
        customer_dni: str | None = None,
        customer_email: str | None = None,
        state: str | None = None,
        payment_type: str | None = None,
        declared_total: float | None = None,
    ) -> None:
        if not staff_user:
            raise NotAuthenticated()
        self.staff_user = staff_user
        self.items = items
        self.customer_dni = customer_dni
        self.customer_email = customer_email
        self.state = state
        self.payment_type = payment_type
        self.declared_total = declared_total

    def resolve_project(self) -> str:
        project_id = get_directory().project_for_staff(self.staff_user)
        if not project_id:
            raise NotAuthorized()
        return project_id

    def _customer_id(self) -> str | None:
        directory = get_directory()
        if self.customer_dni:
            customer_id = directory.customer_id_for_document(self.customer_dni)
            if customer_id:
                return customer_id
        if self.customer_email:
            return directory.customer_id_for_email(self.customer_email)
        return None

    def build_request(self, project_id: str) -> SettlementRequest:
        if not self.items:
            raise EmptyCart("La venta debe tener al menos un producto.")
        if not isinstance(self.items, list):
            raise InvalidInput("Los productos de la venta deben enviarse como una lista")
        try:
            state = SaleState(self.state or SaleState.PAID.value)
        except ValueError:
            raise InvalidInput(f"Estado de venta inválido: {self.state}") from None

        cart_id = None
        if self.customer_email:
            cart = current_domain.repository_for(Cart).pending_for(self.customer_email, project_id)
            cart_id = str(cart.id) if cart else None

        return SettlementRequest(
            project_id=project_id,
            channel=self.channel,
            items=normalize_items(self.items),
            state=state.value,
            payment_type=self.payment_type,
            customer_id=self._customer_id(),
            customer_email=self.customer_email,
            cart_id=cart_id,
            declared_total=self.declared_total,
        )
