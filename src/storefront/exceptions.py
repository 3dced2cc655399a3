"""Application-level exceptions for the storefront.

Aggregates raise ``protean.exceptions.ValidationError`` for their own rules.
The classes here cover what happens around them: who is calling, what could
not be found, and which business rule stopped a checkout. Every error carries
a human-readable ``message`` (shown to shoppers and staff, hence Spanish) and
a stable machine-readable ``code``.
"""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    code = "storefront_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotAuthenticated(StorefrontError):
    """The caller identity was not supplied."""

    code = "not_authenticated"

    def __init__(self, message: str = "No autenticado"):
        super().__init__(message)


class NotAuthorized(StorefrontError):
    """The caller has no project assigned, or acts outside its project."""

    code = "not_authorized"

    def __init__(self, message: str = "No autorizado: el usuario no tiene un proyecto asignado"):
        super().__init__(message)


class NotFound(StorefrontError):
    code = "not_found"


class InvalidInput(StorefrontError):
    """Malformed request content (non-numeric quantities, bad item shapes)."""

    code = "invalid_input"


class BusinessRuleViolation(StorefrontError):
    code = "business_rule_violation"


class EmptyCart(BusinessRuleViolation):
    code = "empty_cart"

    def __init__(self, message: str = "El carrito está vacío."):
        super().__init__(message)


class InvalidTotal(BusinessRuleViolation):
    code = "invalid_total"


class InsufficientStock(BusinessRuleViolation):
    code = "insufficient_stock"

    def __init__(self, product_id: str | None = None):
        self.product_id = product_id
        message = "Stock insuficiente para la venta"
        if product_id:
            message = f"Stock insuficiente para el producto: {product_id}"
        super().__init__(message)


class MissingProjectDetail(BusinessRuleViolation):
    code = "missing_project_detail"

    def __init__(self, product_id: str | None = None):
        self.product_id = product_id
        super().__init__("No se encontró detalle de proyecto para este producto.")


class PaymentNotConfirmed(BusinessRuleViolation):
    code = "payment_not_confirmed"

    def __init__(self, message: str = "El pago no ha sido confirmado"):
        super().__init__(message)


class PaymentGatewayError(StorefrontError):
    """The payment gateway refused or could not be reached."""

    code = "payment_gateway_error"


class SettlementFailed(StorefrontError):
    """A checkout failed after the sale was recorded and was compensated."""

    code = "settlement_failed"

    def __init__(self, settlement_id: str, reason: str):
        self.settlement_id = settlement_id
        self.reason = reason
        super().__init__(f"La venta no pudo completarse y fue revertida: {reason}")


ERROR_STATUS_CODES = {
    NotAuthenticated: 401,
    NotAuthorized: 403,
    NotFound: 404,
    InvalidInput: 400,
    BusinessRuleViolation: 400,
    PaymentGatewayError: 502,
    SettlementFailed: 500,
}


def status_code_for(exc: StorefrontError) -> int:
    """Resolve the HTTP status for an error, walking up its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500
