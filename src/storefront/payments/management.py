"""Payment intent management — commands and handler.

Creating an intent calls out to the gateway; confirming one is driven by the
gateway's signed webhook.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.exceptions import InvalidInput, NotFound
from storefront.payments.gateway import get_gateway
from storefront.payments.intent import MIN_AMOUNT, PaymentIntent
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

APPROVED_STATUSES = {"approved", "accredited"}


@storefront.command(part_of="PaymentIntent")
class CreatePaymentIntent:
    project_id = Identifier(required=True)
    payer_email = String(required=True, max_length=255)
    amount = Float(required=True)
    description = String(max_length=255)


@storefront.command(part_of="PaymentIntent")
class ConfirmPaymentIntent:
    preference_id = String(required=True, max_length=255)
    status = String(required=True, max_length=50)


@storefront.command_handler(part_of=PaymentIntent)
class ManagePaymentIntentHandler:
    @handle(CreatePaymentIntent)
    def create_payment_intent(self, command):
        if command.amount is None or command.amount <= MIN_AMOUNT:
            raise InvalidInput("Monto inválido")

        description = command.description or "Compra en tienda"
        result = get_gateway().create_payment_intent(
            amount=command.amount,
            description=description,
            payer_email=command.payer_email,
        )
        intent = PaymentIntent.open(
            project_id=command.project_id,
            payer_email=command.payer_email,
            amount=command.amount,
            description=description,
            result=result,
        )
        current_domain.repository_for(PaymentIntent).add(intent)

        logger.info(
            "payment_intent_created",
            intent_id=str(intent.id),
            preference_id=result.preference_id,
            project_id=command.project_id,
        )
        return str(intent.id)

    @handle(ConfirmPaymentIntent)
    def confirm_payment_intent(self, command):
        repo = current_domain.repository_for(PaymentIntent)
        intent = repo.by_preference(command.preference_id)
        if intent is None:
            raise NotFound("Pago no encontrado.")

        intent.confirm(approved=command.status.lower() in APPROVED_STATUSES)
        repo.add(intent)

        logger.info("payment_intent_confirmed", intent_id=str(intent.id), status=intent.status)
        return str(intent.id)
