"""FastAPI routes for the Storefront — carts, sales, stock, reports, payments."""

import json
import os
from numbers import Number

from fastapi import APIRouter, Depends, Header, Request
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.api.dependencies import customer_email, customer_project, staff_project, staff_user
from storefront.api.schemas import (
    CartResponse,
    CheckoutProRequest,
    CheckoutProResponse,
    EnrichedSaleResponse,
    ManualSaleRequest,
    PaymentWebhookRequest,
    ReplaceCartRequest,
    RestockRequest,
    RevenueResponse,
    SaleCreatedResponse,
    SaleResponse,
    SettlementResponse,
    StatusResponse,
    StockLevelResponse,
    TopSellerResponse,
    UpdateSaleStateRequest,
    WebSaleRequest,
)
from storefront.cart.cart import Cart
from storefront.cart.management import MISSING_CART_MESSAGE, OpenCart, ReplaceCartContents
from storefront.catalogue.management import RestockProduct
from storefront.catalogue.product import Product
from storefront.checkout.orchestrator import load_settlement, reconcile, settle
from storefront.checkout.sources import CartSource, ManualSource
from storefront.directory import get_directory
from storefront.exceptions import InvalidInput, NotAuthenticated, NotFound
from storefront.payments.gateway import get_gateway
from storefront.payments.intent import PaymentIntent
from storefront.payments.management import ConfirmPaymentIntent, CreatePaymentIntent
from storefront.sale.fulfillment import UpdateSaleState
from storefront.sale.sale import Sale


def _low_stock_ratio() -> float:
    return float(os.getenv("LOW_STOCK_RATIO", "0.15"))


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------
def _cart_response(cart: Cart) -> CartResponse:
    return CartResponse(
        id=str(cart.id),
        customer_email=cart.customer_email,
        project_id=str(cart.project_id),
        items=[
            {
                "product_id": str(line.product_id),
                "quantity": line.quantity,
                "price": line.price,
                "name": line.name,
                "unit": line.unit,
            }
            for line in (cart.items or [])
        ],
        total=cart.total or 0.0,
        status=cart.status,
    )


def _product_names(product_ids) -> dict[str, str]:
    repo = current_domain.repository_for(Product)
    names = {}
    for product_id in set(product_ids):
        try:
            names[product_id] = repo.get(product_id).name
        except ObjectNotFoundError:
            continue
    return names


def _sale_fields(sale: Sale, names: dict[str, str] | None = None) -> dict:
    names = names or {}
    return {
        "id": str(sale.id),
        "nro": sale.nro,
        "invoice_code": sale.invoice_code,
        "customer_id": str(sale.customer_id) if sale.customer_id else None,
        "customer_email": sale.customer_email,
        "items": [
            {
                "product_id": str(line.product_id),
                "price": line.price,
                "quantity": line.quantity,
                "name": names.get(str(line.product_id)),
            }
            for line in (sale.items or [])
        ],
        "total": sale.total,
        "project_id": str(sale.project_id),
        "state": sale.state,
        "payment_type": sale.payment_type,
        "origin": sale.origin,
        "settlement_id": str(sale.settlement_id) if sale.settlement_id else None,
        "sold_at": sale.sold_at,
    }


def _sale_response(sale: Sale) -> SaleResponse:
    return SaleResponse(**_sale_fields(sale))


def _enriched_sale(sale: Sale, names: dict[str, str]) -> EnrichedSaleResponse:
    directory = get_directory()
    customer_id = sale.customer_id
    if not customer_id and sale.customer_email:
        customer_id = directory.customer_id_for_email(sale.customer_email)
    profile = directory.customer_profile(str(customer_id)) if customer_id else None
    return EnrichedSaleResponse(
        **_sale_fields(sale, names),
        first_names=profile.first_names if profile else None,
        last_names=profile.last_names if profile else None,
        cellphone=profile.cellphone if profile else None,
    )


def _settlement_response(settlement) -> SettlementResponse:
    return SettlementResponse(
        settlement_id=str(settlement.id),
        sale_id=str(settlement.sale_id),
        project_id=str(settlement.project_id),
        channel=settlement.channel,
        status=settlement.status,
        applied=settlement.applied_quantities,
        failure_reason=settlement.failure_reason,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carrito", tags=["carrito"])


@cart_router.post("", response_model=CartResponse)
async def open_cart(identity: tuple[str, str] = Depends(customer_project)) -> CartResponse:
    """Return the caller's pending cart, creating an empty one if needed."""
    email, project_id = identity
    cart_id = current_domain.process(OpenCart(customer_email=email, project_id=project_id), asynchronous=False)
    return _cart_response(current_domain.repository_for(Cart).get(cart_id))


@cart_router.get("", response_model=CartResponse)
async def get_cart(identity: tuple[str, str] = Depends(customer_project)) -> CartResponse:
    email, project_id = identity
    cart = current_domain.repository_for(Cart).pending_for(email, project_id)
    if cart is None:
        raise NotFound(MISSING_CART_MESSAGE)
    return _cart_response(cart)


@cart_router.put("", response_model=CartResponse)
async def replace_cart(body: ReplaceCartRequest, identity: tuple[str, str] = Depends(customer_project)) -> CartResponse:
    """Replace the whole contents of the caller's pending cart."""
    email, project_id = identity
    items = body.items
    if isinstance(items, list):
        items = [
            {
                "product_id": item.get("producto_id"),
                "quantity": item.get("cantidad"),
                "price": item.get("precio"),
                "name": item.get("nombre"),
                "unit": item.get("unidad"),
            }
            if isinstance(item, dict)
            else item
            for item in items
        ]
    Cart.validate_contents(items, body.total)

    cart_id = current_domain.process(
        ReplaceCartContents(
            customer_email=email,
            project_id=project_id,
            items=json.dumps(items),
            total=float(body.total),
        ),
        asynchronous=False,
    )
    return _cart_response(current_domain.repository_for(Cart).get(cart_id))


# ---------------------------------------------------------------------------
# Sale Router
# ---------------------------------------------------------------------------
sale_router = APIRouter(prefix="/ventas", tags=["ventas"])


@sale_router.post("", status_code=201, response_model=SaleCreatedResponse)
async def create_store_sale(
    body: ManualSaleRequest,
    username: str = Depends(staff_user),
) -> SaleCreatedResponse:
    """Staff-entered sale: lines from the body, customer by DNI."""
    source = ManualSource(
        staff_user=username,
        items=[item.model_dump() for item in body.items],
        customer_dni=body.dni,
        customer_email=body.email,
        state=body.state,
        payment_type=body.payment_type,
        declared_total=body.total,
    )
    sale = settle(source)
    return SaleCreatedResponse(message="Venta generada exitosamente", sale=_sale_response(sale))


@sale_router.post("/web", status_code=201, response_model=SaleCreatedResponse)
async def create_web_sale(
    body: WebSaleRequest | None = None,  # noqa: ARG001
    email: str = Depends(customer_email),
) -> SaleCreatedResponse:
    """Shopper checkout of the pending cart. Any client-side payment flag is ignored."""
    sale = settle(CartSource(customer_email=email))
    return SaleCreatedResponse(message="Venta web generada exitosamente", sale=_sale_response(sale))


@sale_router.get("", response_model=list[EnrichedSaleResponse])
async def list_sales(project_id: str = Depends(staff_project)) -> list[EnrichedSaleResponse]:
    sales = current_domain.repository_for(Sale).by_project(project_id)
    names = _product_names(str(line.product_id) for sale in sales for line in (sale.items or []))
    return [_enriched_sale(sale, names) for sale in sales]


@sale_router.put("/{sale_id}/estado", response_model=SaleResponse)
async def update_sale_state(
    sale_id: str,
    body: UpdateSaleStateRequest,
    project_id: str = Depends(staff_project),
) -> SaleResponse:
    current_domain.process(
        UpdateSaleState(sale_id=sale_id, project_id=project_id, state=body.state, reason=body.reason),
        asynchronous=False,
    )
    return _sale_response(current_domain.repository_for(Sale).get(sale_id))


@sale_router.get("/settlements/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(settlement_id: str, project_id: str = Depends(staff_project)) -> SettlementResponse:
    settlement = load_settlement(settlement_id)
    if str(settlement.project_id) != project_id:
        raise NotFound("Liquidación no encontrada.")
    return _settlement_response(settlement)


@sale_router.post("/settlements/{settlement_id}/reconcile", response_model=SettlementResponse)
async def reconcile_settlement(settlement_id: str, project_id: str = Depends(staff_project)) -> SettlementResponse:
    """Resume a settlement left unfinished by a crash or a failed step."""
    settlement = load_settlement(settlement_id)
    if str(settlement.project_id) != project_id:
        raise NotFound("Liquidación no encontrada.")
    return _settlement_response(reconcile(settlement_id))


# ---------------------------------------------------------------------------
# Product Router (staff stock management)
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.put("/{product_id}/updatestock", response_model=StockLevelResponse)
async def update_stock(
    product_id: str,
    body: RestockRequest,
    project_id: str = Depends(staff_project),
) -> StockLevelResponse:
    """Add ``stockToAdd`` to the project's stock; the reference level follows."""
    delta = body.delta
    if isinstance(delta, str):
        try:
            delta = float(delta)
        except ValueError:
            delta = None
    if not isinstance(delta, Number) or isinstance(delta, bool):
        raise InvalidInput("La cantidad de stock a agregar debe ser un número.")

    current_domain.process(
        RestockProduct(product_id=product_id, project_id=project_id, delta=float(delta)),
        asynchronous=False,
    )
    product = current_domain.repository_for(Product).get(product_id)
    detail = product.find_project_detail(project_id)
    return StockLevelResponse(
        product_id=str(product.id),
        name=product.name,
        stock=detail.stock,
        wholesale_stock=detail.wholesale_stock,
    )


# ---------------------------------------------------------------------------
# Report Router
# ---------------------------------------------------------------------------
report_router = APIRouter(tags=["reportes"])


@report_router.get("/productos/bajostock", response_model=list[StockLevelResponse])
async def low_stock(project_id: str = Depends(staff_project)) -> list[StockLevelResponse]:
    pairs = current_domain.repository_for(Product).low_stock(project_id, _low_stock_ratio())
    return [
        StockLevelResponse(
            product_id=str(product.id),
            name=product.name,
            stock=detail.stock,
            wholesale_stock=detail.wholesale_stock,
        )
        for product, detail in pairs
    ]


@report_router.get("/productos/masvendidos", response_model=list[TopSellerResponse])
async def top_sellers(project_id: str = Depends(staff_project)) -> list[TopSellerResponse]:
    ranked = current_domain.repository_for(Sale).top_sellers(project_id)
    names = _product_names(product_id for product_id, _ in ranked)
    return [
        TopSellerResponse(product_id=product_id, name=names.get(product_id), quantity=quantity)
        for product_id, quantity in ranked
    ]


@report_router.get("/ganancias/total", response_model=RevenueResponse)
async def total_revenue(project_id: str = Depends(staff_project)) -> RevenueResponse:
    return RevenueResponse(total=current_domain.repository_for(Sale).revenue(project_id))


@report_router.get("/compras/historial", response_model=list[SaleResponse])
async def purchase_history(email: str = Depends(customer_email)) -> list[SaleResponse]:
    """The calling shopper's purchases, newest first."""
    customer_id = get_directory().customer_id_for_email(email)
    sales = current_domain.repository_for(Sale).by_customer(customer_email=email, customer_id=customer_id)
    return [_sale_response(sale) for sale in sales]


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/pagos", tags=["pagos"])


@payment_router.post("/checkoutpro", status_code=201, response_model=CheckoutProResponse)
async def checkout_pro(
    body: CheckoutProRequest,
    identity: tuple[str, str] = Depends(customer_project),
) -> CheckoutProResponse:
    """Create a hosted-checkout preference and return where to send the shopper."""
    email, project_id = identity
    amount = body.amount
    if isinstance(amount, str):
        try:
            amount = float(amount)
        except ValueError:
            amount = None
    if not isinstance(amount, Number) or isinstance(amount, bool):
        raise InvalidInput("Monto inválido")

    intent_id = current_domain.process(
        CreatePaymentIntent(
            project_id=project_id,
            payer_email=email,
            amount=float(amount),
            description=body.description,
        ),
        asynchronous=False,
    )
    intent = current_domain.repository_for(PaymentIntent).get(intent_id)
    return CheckoutProResponse(
        intent_id=str(intent.id),
        preference_id=intent.preference_id,
        init_point=intent.redirect_url,
        sandbox_init_point=intent.sandbox_redirect_url,
    )


@payment_router.post("/webhook", response_model=StatusResponse)
async def payment_webhook(
    request: Request,
    body: PaymentWebhookRequest,
    x_signature: str = Header(default=""),
) -> StatusResponse:
    """Gateway notification of a payment outcome, verified by signature."""
    payload = (await request.body()).decode("utf-8")
    if not get_gateway().verify_webhook_signature(payload, x_signature):
        raise NotAuthenticated("Firma de webhook inválida")

    current_domain.process(
        ConfirmPaymentIntent(preference_id=body.preference_id, status=body.status),
        asynchronous=False,
    )
    return StatusResponse(status="processed")
