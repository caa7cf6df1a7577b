"""Repository for the Order aggregate.

Updates to an existing order go through `save_if_current`. Every loaded order
carries the version it was read at (`_version`); persisting a copy whose
version the store has moved past fails with Protean's ExpectedVersionError,
surfaced here as ConflictError so the caller can re-read and re-apply. No
lock is held: writes to different orders proceed independently.
"""

import structlog
from protean.exceptions import ExpectedVersionError

from delivery.domain import delivery
from delivery.errors import ConflictError
from delivery.order.lifecycle import DeliveryStatus
from delivery.order.order import Order
from delivery.order.tracking import ensure_utc

logger = structlog.get_logger(__name__)


@delivery.repository(part_of=Order)
class OrderRepository:
    def save_if_current(self, order: Order) -> Order:
        """Persist `order` only if the stored copy is still at the version it was read at."""
        order_id = str(order.id)
        read_version = order._version
        order.revision = (order.revision or 0) + 1
        try:
            self.add(order)
        except ExpectedVersionError:
            logger.info("Rejected stale order write", order_id=order_id, read_version=read_version)
            raise ConflictError(order_id, read_version) from None
        return order

    def for_customer(self, customer_id: str) -> list[Order]:
        """Orders placed by a customer, most recent first."""
        return self._dao.query.filter(customer_id=customer_id).order_by("-created_at").all().items

    def for_partner(self, partner_id: str) -> list[Order]:
        """Orders assigned to a delivery partner, most recent first."""
        return self._dao.query.filter(delivery_partner_id=partner_id).order_by("-created_at").all().items

    def active_for_partner(self, partner_id: str) -> list[Order]:
        """Orders the partner still has to deliver, most recent first."""
        return [order for order in self.for_partner(partner_id) if not order.delivered]

    def delivered_for_partner(self, partner_id: str) -> list[Order]:
        """The partner's delivery history, most recently delivered first."""
        delivered = (
            self._dao.query.filter(
                delivery_partner_id=partner_id,
                status=DeliveryStatus.DELIVERED.value,
            )
            .all()
            .items
        )
        return sorted(delivered, key=lambda order: ensure_utc(order.delivered_at), reverse=True)

    def for_pharmacy(self, pharmacy_id: str) -> list[Order]:
        return self._dao.query.filter(pharmacy_id=pharmacy_id).order_by("-created_at").all().items
