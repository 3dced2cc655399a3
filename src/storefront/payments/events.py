"""Domain events for the PaymentIntent aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="PaymentIntent")
class PaymentIntentCreated:
    __version__ = 1

    intent_id = Identifier(required=True)
    project_id = Identifier(required=True)
    payer_email = String(required=True)
    amount = Float(required=True)
    preference_id = String(required=True)
    created_at = DateTime(required=True)


@storefront.event(part_of="PaymentIntent")
class PaymentIntentConfirmed:
    """The gateway reported the outcome of a payment through its webhook."""

    __version__ = 1

    intent_id = Identifier(required=True)
    preference_id = String(required=True)
    status = String(required=True)
    confirmed_at = DateTime(required=True)
