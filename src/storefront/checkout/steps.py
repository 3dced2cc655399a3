"""Settlement steps — one command and one unit of work per step.

    StartSettlement       validate stock, number and record the sale, open
                          the settlement, consume the payment intent
    ApplySettlementStock  withdraw one product's quantity (idempotent)
    ClearSettlementCart   delete the source cart and complete the settlement
    CompensateSettlement  restore withdrawn stock, fail the sale and the
                          settlement

The orchestrator issues these in order under the project guard.
"""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.checkout.settlement import Settlement, SettlementStatus, quantities_by_product
from storefront.domain import storefront
from storefront.exceptions import (
    EmptyCart,
    InsufficientStock,
    InvalidInput,
    InvalidTotal,
    MissingProjectDetail,
    NotFound,
)
from storefront.payments.intent import PaymentIntent
from storefront.sale.sale import TOTAL_TOLERANCE, Sale, compute_total
from storefront.sale.sequence import allocate_sale_number
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _as_number(value):
    if isinstance(value, bool):
        raise InvalidInput("Stock o cantidad inválida")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidInput("Stock o cantidad inválida")


def normalize_items(items):
    """Coerce line items to {product_id, price, quantity} with numeric values."""
    normalized = []
    for item in items:
        product_id = str(item.get("product_id") or "").strip()
        if not product_id:
            raise InvalidInput("Cada producto debe indicar su identificador")
        quantity = _as_number(item.get("quantity"))
        price = _as_number(item.get("price"))
        if quantity <= 0 or price < 0:
            raise InvalidInput("Stock o cantidad inválida")
        normalized.append({"product_id": product_id, "price": price, "quantity": quantity})
    return normalized


def validate_stock(project_id, items):
    """Write-nothing check that every line can be served from the project's stock.

    Both checkout channels go through here. Quantities of repeated products
    are added up before comparing them with the stock on hand.
    """
    if not items:
        raise EmptyCart()

    repo = current_domain.repository_for(Product)
    for product_id, quantity in quantities_by_product(items).items():
        try:
            product = repo.get(product_id)
        except ObjectNotFoundError:
            raise NotFound(f"Producto no encontrado: {product_id}")

        detail = product.find_project_detail(project_id)
        if detail is None:
            raise MissingProjectDetail(product_id)
        if (detail.stock or 0) < quantity:
            raise InsufficientStock(product_id)


@storefront.command(part_of="Settlement")
class StartSettlement:
    settlement_id = Identifier(required=True)
    project_id = Identifier(required=True)
    channel = String(required=True)
    items = Text(required=True)  # JSON: list of {product_id, price, quantity}
    state = String(required=True)
    payment_type = String(max_length=50)
    customer_id = Identifier()
    customer_email = String(max_length=255)
    cart_id = Identifier()
    payment_intent_id = Identifier()
    declared_total = Float()


@storefront.command(part_of="Settlement")
class ApplySettlementStock:
    settlement_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.command(part_of="Settlement")
class ClearSettlementCart:
    settlement_id = Identifier(required=True)


@storefront.command(part_of="Settlement")
class CompensateSettlement:
    settlement_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@storefront.command_handler(part_of=Settlement)
class SettlementStepsHandler:
    @handle(StartSettlement)
    def start(self, command):
        items = json.loads(command.items) if isinstance(command.items, str) else command.items
        validate_stock(command.project_id, items)

        if command.declared_total is not None:
            if abs(float(command.declared_total) - compute_total(items)) > TOTAL_TOLERANCE:
                raise InvalidTotal("El total de la venta no coincide con sus productos")

        nro = allocate_sale_number(command.project_id)
        sale = Sale.record(
            project_id=command.project_id,
            nro=nro,
            items=items,
            state=command.state,
            origin=command.channel,
            payment_type=command.payment_type,
            customer_id=command.customer_id,
            customer_email=command.customer_email,
            settlement_id=command.settlement_id,
        )
        settlement = Settlement.open(
            settlement_id=command.settlement_id,
            project_id=command.project_id,
            channel=command.channel,
            sale_id=str(sale.id),
            items=items,
            cart_id=command.cart_id,
            payment_intent_id=command.payment_intent_id,
        )

        if command.payment_intent_id:
            intent_repo = current_domain.repository_for(PaymentIntent)
            intent = intent_repo.get(command.payment_intent_id)
            intent.consume(sale.id)
            intent_repo.add(intent)

        current_domain.repository_for(Sale).add(sale)
        current_domain.repository_for(Settlement).add(settlement)

        logger.info(
            "sale_recorded",
            settlement_id=command.settlement_id,
            sale_id=str(sale.id),
            project_id=command.project_id,
            nro=nro,
            total=sale.total,
        )
        return str(sale.id)

    @handle(ApplySettlementStock)
    def apply_stock(self, command):
        repo = current_domain.repository_for(Settlement)
        settlement = repo.get(command.settlement_id)
        if settlement.is_terminal or settlement.is_applied(command.product_id):
            return

        quantity = settlement.required_quantities[str(command.product_id)]
        product_repo = current_domain.repository_for(Product)
        product = product_repo.get(command.product_id)
        product.withdraw(settlement.project_id, quantity, settlement.sale_id)
        settlement.record_applied(command.product_id, quantity)

        product_repo.add(product)
        repo.add(settlement)

        logger.info(
            "stock_applied",
            settlement_id=command.settlement_id,
            sale_id=str(settlement.sale_id),
            product_id=command.product_id,
            quantity=quantity,
        )

    @handle(ClearSettlementCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Settlement)
        settlement = repo.get(command.settlement_id)
        if SettlementStatus(settlement.status) != SettlementStatus.STOCK_APPLIED:
            return

        if settlement.cart_id:
            cart_repo = current_domain.repository_for(Cart)
            try:
                cart = cart_repo.get(settlement.cart_id)
            except ObjectNotFoundError:
                cart = None
            if cart is not None:
                cart_repo.discard(cart)

        settlement.complete()
        repo.add(settlement)

        logger.info(
            "settlement_completed",
            settlement_id=command.settlement_id,
            sale_id=str(settlement.sale_id),
            cart_id=settlement.cart_id,
        )

    @handle(CompensateSettlement)
    def compensate(self, command):
        repo = current_domain.repository_for(Settlement)
        settlement = repo.get(command.settlement_id)
        if SettlementStatus(settlement.status) == SettlementStatus.FAILED:
            return

        product_repo = current_domain.repository_for(Product)
        for product_id, quantity in settlement.applied_quantities.items():
            product = product_repo.get(product_id)
            product.restore(settlement.project_id, quantity, settlement.sale_id, command.reason)
            product_repo.add(product)

        sale_repo = current_domain.repository_for(Sale)
        sale = sale_repo.get(settlement.sale_id)
        sale.mark_failed(command.reason)
        sale_repo.add(sale)

        if settlement.payment_intent_id:
            intent_repo = current_domain.repository_for(PaymentIntent)
            intent = intent_repo.get(settlement.payment_intent_id)
            intent.release()
            intent_repo.add(intent)

        settlement.fail(command.reason)
        repo.add(settlement)

        logger.warning(
            "settlement_compensated",
            settlement_id=command.settlement_id,
            sale_id=str(settlement.sale_id),
            restored=settlement.applied_quantities,
            reason=command.reason,
        )
