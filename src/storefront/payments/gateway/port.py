"""Payment gateway port (abstract interface).

The checkout never talks to the gateway directly: a payment intent is created
up front (the shopper is redirected to the gateway's hosted page) and its
confirmation arrives later through the signed webhook.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class IntentResult:
    """Result of creating a hosted-checkout preference."""

    preference_id: str
    redirect_url: str
    sandbox_redirect_url: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_payment_intent(self, amount: float, description: str, payer_email: str) -> IntentResult:
        """Create a hosted-checkout preference and return where to send the payer."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...
