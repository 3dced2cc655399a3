"""Sale aggregate (CQRS) — the durable receipt of a checkout.

Sales are numbered per project (``nro``) from the ``SaleSequence`` counter and
carry an invoice code ``T<project>-<nro>``. Line items are price snapshots and
never change after recording; the total is always the sum of the lines.

State machine:
    pendiente → pagado | para entrega | cancelado
    pagado → para entrega | entregado | cancelado
    para entrega → entregado | cancelado
    entregado, cancelado, fallido are terminal

``fallido`` is only ever set by the checkout saga when it compensates a sale
whose stock could not be applied.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from storefront.domain import storefront
from storefront.sale.events import SaleRecorded, SaleStateChanged

TOTAL_TOLERANCE = 0.01


class SaleState(Enum):
    PENDING = "pendiente"
    PAID = "pagado"
    FOR_DELIVERY = "para entrega"
    DELIVERED = "entregado"
    CANCELLED = "cancelado"
    FAILED = "fallido"


class SaleOrigin(Enum):
    WEB = "web"
    STORE = "tienda"


_VALID_TRANSITIONS = {
    SaleState.PENDING: {SaleState.PAID, SaleState.FOR_DELIVERY, SaleState.CANCELLED},
    SaleState.PAID: {SaleState.FOR_DELIVERY, SaleState.DELIVERED, SaleState.CANCELLED},
    SaleState.FOR_DELIVERY: {SaleState.DELIVERED, SaleState.CANCELLED},
    SaleState.DELIVERED: set(),  # Terminal
    SaleState.CANCELLED: set(),  # Terminal
    SaleState.FAILED: set(),  # Terminal
}

# States a sale may be recorded in
INITIAL_STATES = {SaleState.PENDING, SaleState.PAID, SaleState.FOR_DELIVERY, SaleState.DELIVERED}

# States whose totals count as revenue
REVENUE_STATES = {SaleState.PAID, SaleState.FOR_DELIVERY, SaleState.DELIVERED}


def invoice_code_for(project_id, nro):
    return f"T{project_id}-{nro}"


def compute_total(items):
    """Σ price × quantity over ``items`` (dicts), rounded to cents."""
    return round(sum(float(i["price"]) * float(i["quantity"]) for i in items), 2)


@storefront.entity(part_of="Sale")
class SaleLine:
    product_id = Identifier(required=True)
    price = Float(required=True, min_value=0.0)
    quantity = Float(required=True, min_value=0.0)


@storefront.aggregate
class Sale:
    nro = Integer(required=True, min_value=1)
    invoice_code = String(required=True, max_length=100)
    customer_id = Identifier()
    customer_email = String(max_length=255)
    items = HasMany(SaleLine)
    total = Float(required=True, min_value=0.0)
    project_id = Identifier(required=True)
    state = String(choices=SaleState, default=SaleState.PENDING.value)
    payment_type = String(max_length=50)
    origin = String(choices=SaleOrigin, default=SaleOrigin.WEB.value)
    settlement_id = Identifier()
    failure_reason = String(max_length=500)
    sold_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_lines(self):
        lines = self.items or []
        expected = round(sum(line.price * line.quantity for line in lines), 2)
        if abs(expected - (self.total or 0.0)) > TOTAL_TOLERANCE:
            raise ValidationError({"total": ["El total de la venta no coincide con sus productos"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def record(
        cls,
        project_id,
        nro,
        items,
        state,
        origin,
        payment_type=None,
        customer_id=None,
        customer_email=None,
        settlement_id=None,
        sale_id=None,
    ):
        """Build a committed sale from ``items`` ({product_id, price, quantity})."""
        if not items:
            raise ValidationError({"items": ["Una venta necesita al menos un producto"]})
        if SaleState(state) not in INITIAL_STATES:
            raise ValidationError({"state": [f"Una venta no puede registrarse como '{state}'"]})

        now = datetime.now(UTC)
        total = compute_total(items)
        kwargs = {"id": sale_id} if sale_id else {}
        sale = cls(
            nro=nro,
            invoice_code=invoice_code_for(project_id, nro),
            customer_id=customer_id,
            customer_email=customer_email,
            items=[
                SaleLine(
                    product_id=str(i["product_id"]),
                    price=float(i["price"]),
                    quantity=float(i["quantity"]),
                )
                for i in items
            ],
            total=total,
            project_id=str(project_id),
            state=SaleState(state).value,
            payment_type=payment_type,
            origin=SaleOrigin(origin).value,
            settlement_id=settlement_id,
            sold_at=now,
            updated_at=now,
            **kwargs,
        )
        sale.raise_(
            SaleRecorded(
                sale_id=str(sale.id),
                project_id=str(project_id),
                nro=nro,
                invoice_code=sale.invoice_code,
                total=total,
                state=sale.state,
                origin=sale.origin,
                customer_email=customer_email,
                sold_at=now,
            )
        )
        return sale

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_state):
        current = SaleState(self.state)
        if target_state not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"state": [f"No se puede cambiar el estado de '{current.value}' a '{target_state.value}'"]}
            )

    def _set_state(self, target_state, reason=None):
        previous = self.state
        now = datetime.now(UTC)
        self.state = target_state.value
        self.updated_at = now
        self.raise_(
            SaleStateChanged(
                sale_id=str(self.id),
                project_id=str(self.project_id),
                previous_state=previous,
                new_state=target_state.value,
                reason=reason,
                changed_at=now,
            )
        )

    def change_state(self, new_state, reason=None):
        target = SaleState(new_state)
        self._assert_can_transition(target)
        self._set_state(target, reason)

    def mark_failed(self, reason):
        """Compensation: the sale stands in the ledger but never happened."""
        if SaleState(self.state) == SaleState.FAILED:
            return
        self.failure_reason = reason
        self._set_state(SaleState.FAILED, reason)

    @property
    def counts_as_revenue(self):
        return SaleState(self.state) in REVENUE_STATES

    def line_quantities(self):
        """product_id → total quantity across the sale's lines."""
        quantities = {}
        for line in self.items or []:
            key = str(line.product_id)
            quantities[key] = round(quantities.get(key, 0.0) + line.quantity, 3)
        return quantities
