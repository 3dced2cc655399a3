"""Sale fulfillment — state changes after checkout.

Staff move a sale through delivery. Cancelling a sale whose stock was
withdrawn puts that stock back in the same unit of work; a sale whose
settlement is still in flight cannot be cancelled until it is reconciled.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.checkout.settlement import Settlement, SettlementStatus
from storefront.domain import storefront
from storefront.exceptions import BusinessRuleViolation, InvalidInput, NotAuthorized, NotFound
from storefront.sale.sale import Sale, SaleState
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_STOCK_WITHDRAWN = {SettlementStatus.STOCK_APPLIED, SettlementStatus.COMPLETED}


@storefront.command(part_of="Sale")
class UpdateSaleState:
    sale_id = Identifier(required=True)
    project_id = Identifier(required=True)
    state = String(required=True, max_length=50)
    reason = String(max_length=500)


def _stock_withdrawn(sale):
    if not sale.settlement_id:
        return True
    try:
        settlement = current_domain.repository_for(Settlement).get(sale.settlement_id)
    except ObjectNotFoundError:
        return True
    if SettlementStatus(settlement.status) == SettlementStatus.SALE_RECORDED:
        raise BusinessRuleViolation("La venta todavía se está liquidando; concilie la liquidación primero.")
    return SettlementStatus(settlement.status) in _STOCK_WITHDRAWN


@storefront.command_handler(part_of=Sale)
class FulfillmentHandler:
    @handle(UpdateSaleState)
    def update_state(self, command):
        repo = current_domain.repository_for(Sale)
        try:
            sale = repo.get(command.sale_id)
        except ObjectNotFoundError:
            raise NotFound("Venta no encontrada.")
        if str(sale.project_id) != str(command.project_id):
            raise NotAuthorized("No autorizado: la venta pertenece a otro proyecto")

        try:
            target = SaleState(command.state)
        except ValueError:
            raise InvalidInput(f"Estado de venta inválido: {command.state}")

        restore = target == SaleState.CANCELLED and _stock_withdrawn(sale)
        sale.change_state(target.value, reason=command.reason)
        if restore:
            product_repo = current_domain.repository_for(Product)
            for product_id, quantity in sale.line_quantities().items():
                product = product_repo.get(product_id)
                product.restore(sale.project_id, quantity, sale.id, command.reason or "Venta cancelada")
                product_repo.add(product)

        repo.add(sale)
        logger.info("sale_state_changed", sale_id=str(sale.id), state=sale.state)
        return str(sale.id)
