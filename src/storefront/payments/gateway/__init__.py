"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (PAYMENT_GATEWAY=fake, the default)
- MercadoPagoGateway for production (PAYMENT_GATEWAY=mercadopago)
"""

import os

from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.gateway.mercadopago_adapter import MercadoPagoGateway
from storefront.payments.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _gateway_from_env() -> PaymentGateway:
    if os.getenv("PAYMENT_GATEWAY", "fake").lower() == "mercadopago":
        return MercadoPagoGateway(
            access_token=os.environ["MERCADOPAGO_ACCESS_TOKEN"],
            webhook_secret=os.getenv("MERCADOPAGO_WEBHOOK_SECRET", ""),
            back_url=os.getenv("PAYMENT_BACK_URL", "http://localhost:5173/pago"),
        )
    return FakeGateway()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _gateway_from_env()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
