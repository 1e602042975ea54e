"""Storefront domain: catalogue variants and shopping carts.

Products with their variant matrix and the shopper carts that reference
those variants live in one domain: removing a variant has to see live cart
lines inside the same unit of work, and adding to a cart has to see the
product's current variants.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging(log_dir="logs", log_file_prefix="storefront")

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
