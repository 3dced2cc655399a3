"""Storefront bounded context — per-project catalogues, carts and sales.

Handles the product catalogue with per-project stock, the pending cart of each
customer, the sale ledger, and the checkout saga that settles a cart (or a
staff-entered sale) into a durable sale while decrementing stock.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
