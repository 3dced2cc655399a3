"""PaymentIntent aggregate — one hosted-checkout preference at the gateway.

Lifecycle:
    pending → approved | rejected   (signed webhook)
    approved → consumed             (a web checkout turned it into a sale)

An approved intent pays for exactly one sale; ``consume`` is only accepted
once, and ``release`` hands it back if that sale is compensated.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront
from storefront.payments.events import PaymentIntentConfirmed, PaymentIntentCreated

MIN_AMOUNT = 0.1


class IntentStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONSUMED = "consumed"


@storefront.aggregate
class PaymentIntent:
    project_id = Identifier(required=True)
    payer_email = String(required=True, max_length=255)
    amount = Float(required=True)
    description = String(max_length=255)
    preference_id = String(required=True, max_length=255)
    redirect_url = String(max_length=1024)
    sandbox_redirect_url = String(max_length=1024)
    status = String(choices=IntentStatus, default=IntentStatus.PENDING.value)
    sale_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, project_id, payer_email, amount, description, result):
        if amount is None or amount <= MIN_AMOUNT:
            raise ValidationError({"amount": ["Monto inválido"]})

        now = datetime.now(UTC)
        intent = cls(
            project_id=str(project_id),
            payer_email=payer_email,
            amount=round(float(amount), 2),
            description=description,
            preference_id=result.preference_id,
            redirect_url=result.redirect_url,
            sandbox_redirect_url=result.sandbox_redirect_url,
            created_at=now,
            updated_at=now,
        )
        intent.raise_(
            PaymentIntentCreated(
                intent_id=str(intent.id),
                project_id=str(project_id),
                payer_email=payer_email,
                amount=intent.amount,
                preference_id=result.preference_id,
                created_at=now,
            )
        )
        return intent

    def confirm(self, approved):
        """Record the gateway's verdict. Repeated identical webhooks are ignored."""
        target = IntentStatus.APPROVED if approved else IntentStatus.REJECTED
        current = IntentStatus(self.status)
        if current == target:
            return
        if current != IntentStatus.PENDING:
            raise ValidationError({"status": [f"El pago ya fue procesado ({current.value})"]})

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.raise_(
            PaymentIntentConfirmed(
                intent_id=str(self.id),
                preference_id=self.preference_id,
                status=target.value,
                confirmed_at=now,
            )
        )

    def consume(self, sale_id):
        if IntentStatus(self.status) != IntentStatus.APPROVED:
            raise ValidationError({"status": ["El pago no ha sido confirmado"]})
        self.status = IntentStatus.CONSUMED.value
        self.sale_id = str(sale_id)
        self.updated_at = datetime.now(UTC)

    def release(self):
        """Give a consumed intent back when its sale was compensated."""
        if IntentStatus(self.status) == IntentStatus.CONSUMED:
            self.status = IntentStatus.APPROVED.value
            self.sale_id = None
            self.updated_at = datetime.now(UTC)

    def covers(self, amount):
        return abs(round(float(amount), 2) - self.amount) <= 0.01
