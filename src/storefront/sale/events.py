"""Domain events for the Sale aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Sale")
class SaleRecorded:
    """A sale was committed to the ledger with its per-project number."""

    __version__ = 1

    sale_id = Identifier(required=True)
    project_id = Identifier(required=True)
    nro = Integer(required=True)
    invoice_code = String(required=True)
    total = Float(required=True)
    state = String(required=True)
    origin = String(required=True)
    customer_email = String()
    sold_at = DateTime(required=True)


@storefront.event(part_of="Sale")
class SaleStateChanged:
    __version__ = 1

    sale_id = Identifier(required=True)
    project_id = Identifier(required=True)
    previous_state = String(required=True)
    new_state = String(required=True)
    reason = String()
    changed_at = DateTime(required=True)
