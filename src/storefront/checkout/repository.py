"""Repository for the Settlement aggregate."""

from datetime import UTC, datetime, timedelta

from storefront.checkout.settlement import Settlement, SettlementStatus
from storefront.domain import storefront

_OPEN_STATUSES = (SettlementStatus.SALE_RECORDED.value, SettlementStatus.STOCK_APPLIED.value)


@storefront.repository(part_of=Settlement)
class SettlementRepository:
    def unfinished(self, older_than_minutes: float = 0) -> list[Settlement]:
        """Settlements stuck before completion for at least ``older_than_minutes``."""
        cutoff = datetime.now(UTC) - timedelta(minutes=older_than_minutes)
        result = []
        for status in _OPEN_STATUSES:
            for settlement in self._dao.query.filter(status=status).limit(None).all().items:
                updated = settlement.updated_at
                if updated is not None and updated.tzinfo is None:
                    updated = updated.replace(tzinfo=UTC)
                if updated is None or updated <= cutoff:
                    result.append(settlement)
        return result
