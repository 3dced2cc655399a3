"""Configurable fake payment gateway for development and testing.

No external calls: preferences get generated ids and local redirect URLs,
and the webhook signature ``test-signature`` is the only one accepted.
"""

from uuid import uuid4

from storefront.exceptions import PaymentGatewayError
from storefront.payments.gateway.port import IntentResult, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_payment_intent(self, amount: float, description: str, payer_email: str) -> IntentResult:
        self.calls.append(
            {
                "method": "create_payment_intent",
                "amount": amount,
                "description": description,
                "payer_email": payer_email,
            }
        )
        if not self.should_succeed:
            raise PaymentGatewayError(self.failure_reason)

        preference_id = f"fake_pref_{uuid4().hex[:12]}"
        return IntentResult(
            preference_id=preference_id,
            redirect_url=f"https://pay.example.test/checkout/{preference_id}",
            sandbox_redirect_url=f"https://sandbox.pay.example.test/checkout/{preference_id}",
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"
