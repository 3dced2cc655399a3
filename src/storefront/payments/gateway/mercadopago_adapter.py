"""MercadoPago Checkout Pro adapter.

Creates preferences through the REST API with httpx. Amounts are charged in
soles (PEN) as a single line carrying the cart description. Webhook payloads
are signed with HMAC-SHA256 over the raw body using the webhook secret; the
signature travels hex-encoded in the ``X-Signature`` header.
"""

import hashlib
import hmac

import httpx

from storefront.exceptions import PaymentGatewayError
from storefront.payments.gateway.port import IntentResult, PaymentGateway
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

API_BASE_URL = "https://api.mercadopago.com"
CURRENCY = "PEN"


class MercadoPagoGateway(PaymentGateway):
    def __init__(
        self,
        access_token: str,
        webhook_secret: str,
        back_url: str,
        base_url: str = API_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.access_token = access_token
        self.webhook_secret = webhook_secret
        self.back_url = back_url.rstrip("/")
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def _preference_body(self, amount: float, description: str, payer_email: str) -> dict:
        return {
            "items": [
                {
                    "title": description,
                    "quantity": 1,
                    "unit_price": round(float(amount), 2),
                    "currency_id": CURRENCY,
                }
            ],
            "payer": {"email": payer_email},
            "back_urls": {
                "success": f"{self.back_url}/success",
                "failure": f"{self.back_url}/failure",
                "pending": f"{self.back_url}/pending",
            },
            "auto_return": "approved",
        }

    def create_payment_intent(self, amount: float, description: str, payer_email: str) -> IntentResult:
        try:
            response = self._client.post(
                "/checkout/preferences",
                json=self._preference_body(amount, description, payer_email),
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("mercadopago_preference_failed", error=str(exc), amount=amount)
            raise PaymentGatewayError("No se pudo crear la preferencia de pago") from exc
        data = response.json()

        logger.info("mercadopago_preference_created", preference_id=data.get("id"), amount=amount)
        return IntentResult(
            preference_id=str(data["id"]),
            redirect_url=data["init_point"],
            sandbox_redirect_url=data.get("sandbox_init_point"),
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        if not signature or not self.webhook_secret:
            return False
        expected = hmac.new(self.webhook_secret.encode(), payload.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)
