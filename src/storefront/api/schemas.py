"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. Wire names follow the shop's frontend (Spanish);
Python attribute names are English and mapped through aliases.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class ReplaceCartRequest(_Wire):
    """Cart contents arrive loosely typed; the Cart aggregate validates them."""

    items: Any = Field(default=None, alias="productos")
    total: Any = None


class CartLineResponse(_Wire):
    product_id: str = Field(alias="producto_id")
    quantity: float = Field(alias="cantidad")
    price: float = Field(alias="precio")
    name: str | None = Field(default=None, alias="nombre")
    unit: str | None = Field(default=None, alias="unidad")


class CartResponse(_Wire):
    id: str
    customer_email: str = Field(alias="cliente_id")
    project_id: str = Field(alias="proyecto_id")
    items: list[CartLineResponse] = Field(default_factory=list, alias="productos")
    total: float
    status: str = Field(alias="estado")


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------
class SaleItemRequest(_Wire):
    product_id: str = Field(alias="producto")
    quantity: Any = Field(alias="cantidad")
    price: Any = Field(default=0.0, alias="precio")


class ManualSaleRequest(_Wire):
    dni: str | None = None
    email: str | None = None
    items: list[SaleItemRequest] = Field(default_factory=list)
    total: float | None = Field(default=None, alias="totalVenta")
    state: str | None = Field(default=None, alias="estado")
    payment_type: str | None = Field(default=None, alias="tipoPago")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "dni": "45678912",
                    "items": [{"producto": "prod-001", "cantidad": 2, "precio": 10.0}],
                    "totalVenta": 20.0,
                    "estado": "pagado",
                    "tipoPago": "efectivo",
                }
            ]
        },
    )


class WebSaleRequest(_Wire):
    # Accepted for compatibility with older clients and otherwise ignored.
    payment_succeeded: bool | None = Field(default=None, alias="pagoExitoso")


class UpdateSaleStateRequest(_Wire):
    state: str = Field(alias="estado")
    reason: str | None = Field(default=None, alias="motivo")


class SaleLineResponse(_Wire):
    product_id: str = Field(alias="producto")
    price: float = Field(alias="precio")
    quantity: float = Field(alias="cantidad")
    name: str | None = Field(default=None, alias="nombre")


class SaleResponse(_Wire):
    id: str
    nro: int
    invoice_code: str = Field(alias="nfac")
    customer_id: str | None = Field(default=None, alias="cliente")
    customer_email: str | None = Field(default=None, alias="email")
    items: list[SaleLineResponse]
    total: float = Field(alias="totalVenta")
    project_id: str = Field(alias="proyecto_id")
    state: str = Field(alias="estado")
    payment_type: str | None = Field(default=None, alias="tipoPago")
    origin: str = Field(alias="origen")
    settlement_id: str | None = None
    sold_at: datetime | None = Field(default=None, alias="fecha")


class EnrichedSaleResponse(SaleResponse):
    first_names: str | None = Field(default=None, alias="nombres")
    last_names: str | None = Field(default=None, alias="apellidos")
    cellphone: str | None = Field(default=None, alias="celular")


class SaleCreatedResponse(_Wire):
    message: str
    sale: SaleResponse = Field(alias="venta")


class SettlementResponse(BaseModel):
    settlement_id: str
    sale_id: str
    project_id: str
    channel: str
    status: str
    applied: dict[str, float]
    failure_reason: str | None = None


# ---------------------------------------------------------------------------
# Catalogue and reports
# ---------------------------------------------------------------------------
class RestockRequest(_Wire):
    delta: Any = Field(alias="stockToAdd")


class StockLevelResponse(_Wire):
    product_id: str = Field(alias="producto_id")
    name: str = Field(alias="nombre")
    stock: float
    wholesale_stock: float = Field(alias="stockmayor")


class TopSellerResponse(_Wire):
    product_id: str = Field(alias="producto_id")
    name: str | None = Field(default=None, alias="nombre")
    quantity: float = Field(alias="cantidad")


class RevenueResponse(BaseModel):
    total: float


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class CheckoutProRequest(_Wire):
    amount: Any = Field(default=None, alias="monto")
    description: str | None = Field(default=None, alias="descripcion")


class CheckoutProResponse(BaseModel):
    intent_id: str
    preference_id: str
    init_point: str
    sandbox_init_point: str | None = None


class PaymentWebhookRequest(BaseModel):
    preference_id: str
    status: str


class StatusResponse(BaseModel):
    status: str = "ok"
