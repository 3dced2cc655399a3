"""Settlement aggregate — the persisted state of one checkout attempt.

A settlement is written in the same unit of work as its sale and is updated
after every step, so a crash leaves a record the reconcile sweep can pick up.

State machine:
    sale_recorded → stock_applied → completed
    sale_recorded | stock_applied → failed   (compensation)

``applied`` records, per product, the quantity already withdrawn from stock.
Applying a product twice is a no-op, which is what makes retries safe.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text

from storefront.checkout.events import SettlementCompleted, SettlementFailed
from storefront.domain import storefront


class SettlementStatus(Enum):
    SALE_RECORDED = "sale_recorded"
    STOCK_APPLIED = "stock_applied"
    COMPLETED = "completed"
    FAILED = "failed"


class Channel(Enum):
    WEB = "web"
    STORE = "tienda"


_VALID_TRANSITIONS = {
    SettlementStatus.SALE_RECORDED: {SettlementStatus.STOCK_APPLIED, SettlementStatus.FAILED},
    SettlementStatus.STOCK_APPLIED: {SettlementStatus.COMPLETED, SettlementStatus.FAILED},
    SettlementStatus.COMPLETED: set(),  # Terminal
    SettlementStatus.FAILED: set(),  # Terminal
}


def quantities_by_product(items):
    """Collapse line items into product_id → total quantity."""
    quantities = {}
    for item in items:
        key = str(item["product_id"])
        quantities[key] = round(quantities.get(key, 0.0) + float(item["quantity"]), 3)
    return quantities


@storefront.aggregate
class Settlement:
    project_id = Identifier(required=True)
    channel = String(choices=Channel, required=True)
    sale_id = Identifier(required=True)
    cart_id = Identifier()
    payment_intent_id = Identifier()
    items = Text(required=True)  # JSON: list of {product_id, price, quantity}
    applied = Text(default="{}")  # JSON: product_id → quantity withdrawn
    status = String(choices=SettlementStatus, default=SettlementStatus.SALE_RECORDED.value)
    failure_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()

    @classmethod
    def open(cls, settlement_id, project_id, channel, sale_id, items, cart_id=None, payment_intent_id=None):
        now = datetime.now(UTC)
        return cls(
            id=settlement_id,
            project_id=str(project_id),
            channel=Channel(channel).value,
            sale_id=str(sale_id),
            cart_id=cart_id,
            payment_intent_id=payment_intent_id,
            items=json.dumps(items),
            applied="{}",
            status=SettlementStatus.SALE_RECORDED.value,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def line_items(self):
        return json.loads(self.items) if self.items else []

    @property
    def applied_quantities(self):
        return json.loads(self.applied) if self.applied else {}

    @property
    def required_quantities(self):
        return quantities_by_product(self.line_items)

    def is_applied(self, product_id):
        return str(product_id) in self.applied_quantities

    def pending_products(self):
        """Products whose stock has not been withdrawn yet, in line order."""
        applied = self.applied_quantities
        return [pid for pid in self.required_quantities if pid not in applied]

    @property
    def is_terminal(self):
        return not _VALID_TRANSITIONS[SettlementStatus(self.status)]

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target):
        current = SettlementStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

    def record_applied(self, product_id, quantity):
        if SettlementStatus(self.status) != SettlementStatus.SALE_RECORDED:
            raise ValidationError({"status": [f"Stock can only be applied while {SettlementStatus.SALE_RECORDED.value}"]})

        applied = self.applied_quantities
        applied[str(product_id)] = round(float(quantity), 3)
        self.applied = json.dumps(applied)
        self.updated_at = datetime.now(UTC)

        if not self.pending_products():
            self.status = SettlementStatus.STOCK_APPLIED.value

    def complete(self):
        self._assert_can_transition(SettlementStatus.COMPLETED)
        now = datetime.now(UTC)
        self.status = SettlementStatus.COMPLETED.value
        self.updated_at = now
        self.completed_at = now
        self.raise_(
            SettlementCompleted(
                settlement_id=str(self.id),
                sale_id=str(self.sale_id),
                project_id=str(self.project_id),
                channel=self.channel,
                completed_at=now,
            )
        )

    def fail(self, reason):
        self._assert_can_transition(SettlementStatus.FAILED)
        now = datetime.now(UTC)
        self.status = SettlementStatus.FAILED.value
        self.failure_reason = reason
        self.updated_at = now
        self.raise_(
            SettlementFailed(
                settlement_id=str(self.id),
                sale_id=str(self.sale_id),
                project_id=str(self.project_id),
                reason=reason,
                failed_at=now,
            )
        )
