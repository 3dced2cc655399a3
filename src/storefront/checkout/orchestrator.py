"""Checkout orchestrator — runs the settlement saga for any sale source.

    settle(source)
        1. resolve the project (fails closed)
        2. under the project guard: build the request from the source,
           StartSettlement, ApplySettlementStock per product,
           ClearSettlementCart
        3. a failure while applying stock compensates the settlement

    reconcile(settlement_id)
        resume an unfinished settlement from its persisted status

    sweep_stale()
        reconcile every settlement left unfinished for too long
"""

import json
import os
from uuid import uuid4

from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.checkout.guard import project_guard
from storefront.checkout.settlement import Settlement, SettlementStatus
from storefront.checkout.sources import SaleSource
from storefront.checkout.steps import (
    ApplySettlementStock,
    ClearSettlementCart,
    CompensateSettlement,
    StartSettlement,
)
from storefront.exceptions import InsufficientStock, NotFound, SettlementFailed
from storefront.sale.sale import Sale
from storefront.utils.logging import add_context, clear_context, get_logger

logger = get_logger(__name__)


def _stale_minutes() -> float:
    return float(os.getenv("SETTLEMENT_STALE_MINUTES", "5"))


def _reason(exc: Exception) -> str:
    if isinstance(exc, ValidationError) and isinstance(exc.messages, dict):
        for messages in exc.messages.values():
            if messages:
                return str(messages[0] if isinstance(messages, list) else messages)
    return str(exc) or exc.__class__.__name__


def load_settlement(settlement_id: str) -> Settlement:
    try:
        return current_domain.repository_for(Settlement).get(settlement_id)
    except ObjectNotFoundError:
        raise NotFound("Liquidación no encontrada.")


def _apply_product(settlement_id: str, product_id: str) -> None:
    command = ApplySettlementStock(settlement_id=settlement_id, product_id=product_id)
    try:
        current_domain.process(command, asynchronous=False)
    except ExpectedVersionError:
        # Another writer saved the product first; the handler reloads it.
        logger.warning("stock_version_conflict", settlement_id=settlement_id, product_id=product_id)
        current_domain.process(command, asynchronous=False)


def _apply_stock(settlement: Settlement) -> None:
    for product_id in settlement.pending_products():
        try:
            _apply_product(str(settlement.id), product_id)
        except Exception as exc:
            reason = _reason(exc)
            logger.error(
                "stock_application_failed",
                settlement_id=str(settlement.id),
                sale_id=str(settlement.sale_id),
                product_id=product_id,
                reason=reason,
            )
            current_domain.process(
                CompensateSettlement(settlement_id=str(settlement.id), reason=reason),
                asynchronous=False,
            )
            stock_conflict = isinstance(exc, ExpectedVersionError)
            if stock_conflict or (isinstance(exc, ValidationError) and "stock" in (exc.messages or {})):
                raise InsufficientStock(product_id) from exc
            raise SettlementFailed(str(settlement.id), reason) from exc


def _clear_cart(settlement: Settlement) -> None:
    try:
        current_domain.process(ClearSettlementCart(settlement_id=str(settlement.id)), asynchronous=False)
    except Exception:
        # The sale and its stock stand; the reconcile sweep retries the cart.
        logger.exception(
            "cart_clear_failed",
            settlement_id=str(settlement.id),
            sale_id=str(settlement.sale_id),
            cart_id=settlement.cart_id,
        )


def _drive(settlement_id: str) -> Settlement:
    """Run the remaining steps of a settlement. Caller holds the project guard."""
    settlement = load_settlement(settlement_id)
    if SettlementStatus(settlement.status) == SettlementStatus.SALE_RECORDED:
        _apply_stock(settlement)
        settlement = load_settlement(settlement_id)
    if SettlementStatus(settlement.status) == SettlementStatus.STOCK_APPLIED:
        _clear_cart(settlement)
        settlement = load_settlement(settlement_id)
    return settlement


def settle(source: SaleSource) -> Sale:
    """Turn the source's lines into a committed sale with its stock withdrawn."""
    project_id = source.resolve_project()
    add_context(project_id=project_id, channel=source.channel)
    try:
        with project_guard(project_id):
            request = source.build_request(project_id)
            settlement_id = str(uuid4())
            sale_id = current_domain.process(
                StartSettlement(
                    settlement_id=settlement_id,
                    project_id=request.project_id,
                    channel=request.channel,
                    items=json.dumps(request.items),
                    state=request.state,
                    payment_type=request.payment_type,
                    customer_id=request.customer_id,
                    customer_email=request.customer_email,
                    cart_id=request.cart_id,
                    payment_intent_id=request.payment_intent_id,
                    declared_total=request.declared_total,
                ),
                asynchronous=False,
            )
            settlement = _drive(settlement_id)

        logger.info(
            "checkout_settled",
            settlement_id=settlement_id,
            sale_id=sale_id,
            status=settlement.status,
        )
        return current_domain.repository_for(Sale).get(sale_id)
    finally:
        clear_context()


def reconcile(settlement_id: str) -> Settlement:
    """Roll an unfinished settlement forward, compensating if its stock is gone."""
    settlement = load_settlement(settlement_id)
    if settlement.is_terminal:
        return settlement

    with project_guard(settlement.project_id):
        try:
            settlement = _drive(settlement_id)
        except (InsufficientStock, SettlementFailed) as exc:
            logger.warning("settlement_reconciled_as_failed", settlement_id=settlement_id, reason=exc.message)
            settlement = load_settlement(settlement_id)

    logger.info("settlement_reconciled", settlement_id=settlement_id, status=settlement.status)
    return settlement


def sweep_stale(older_than_minutes: float | None = None) -> list[Settlement]:
    minutes = _stale_minutes() if older_than_minutes is None else older_than_minutes
    stale = current_domain.repository_for(Settlement).unfinished(older_than_minutes=minutes)
    return [reconcile(str(s.id)) for s in stale]
