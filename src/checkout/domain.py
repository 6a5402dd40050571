"""Checkout bounded context: cart pricing and multi-store order submission.

Prices per-store carts (distance-based delivery fees, service fees, ETAs),
resolves the payment instrument for a checkout attempt, and submits either a
single-store order or one combined order spanning several stores.
"""

from protean.domain import Domain

from checkout.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
checkout = Domain(name="checkout")
