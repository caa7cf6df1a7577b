"""Delivery bounded context — pharmacy order delivery lifecycle.

Tracks an order from assignment to a delivery partner through pickup, transit
and hand-over to the customer, together with the partner's live position.
Uses CQRS: the Order aggregate is persisted as current state and its domain
events feed the tracking projection and the notification layer.
"""

from protean.domain import Domain

from delivery.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
delivery = Domain(name="delivery")
