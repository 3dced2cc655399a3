"""Repository for the PaymentIntent aggregate."""

from storefront.domain import storefront
from storefront.payments.intent import IntentStatus, PaymentIntent


@storefront.repository(part_of=PaymentIntent)
class PaymentIntentRepository:
    def by_preference(self, preference_id: str) -> PaymentIntent | None:
        return self._dao.query.filter(preference_id=preference_id).all().first

    def approved_for(self, payer_email: str, project_id: str, amount: float) -> PaymentIntent | None:
        """An approved, unconsumed intent of the payer covering ``amount``."""
        intents = (
            self._dao.query.filter(
                payer_email=payer_email,
                project_id=str(project_id),
                status=IntentStatus.APPROVED.value,
            )
            .limit(None)
            .all()
            .items
        )
        return next((i for i in intents if i.covers(amount)), None)
