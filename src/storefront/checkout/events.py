"""Domain events for the Settlement aggregate."""

from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Settlement")
class SettlementCompleted:
    __version__ = 1

    settlement_id = Identifier(required=True)
    sale_id = Identifier(required=True)
    project_id = Identifier(required=True)
    channel = String(required=True)
    completed_at = DateTime(required=True)


@storefront.event(part_of="Settlement")
class SettlementFailed:
    """A settlement was compensated: stock restored, sale marked failed."""

    __version__ = 1

    settlement_id = Identifier(required=True)
    sale_id = Identifier(required=True)
    project_id = Identifier(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)
