"""Delivery service: the boundary the rest of the application talks to.

Every write is a read/validate/conditional-write round trip against the
Order repository. A transition that loses a race re-reads and re-applies up
to `max_retries` times before the conflict is surfaced. Location reports
carry no history, so they simply re-read and overwrite until the write
lands; each conflict means some other write succeeded, so this terminates.
"""

from datetime import datetime

import structlog
from protean.exceptions import ObjectNotFoundError

from delivery.errors import ConflictError, OrderNotFoundError
from delivery.order.order import Order

logger = structlog.get_logger(__name__)

DEFAULT_MAX_RETRIES = 3


class DeliveryService:
    def __init__(self, repository, max_retries: int = DEFAULT_MAX_RETRIES):
        self._repository = repository
        self.max_retries = max_retries

    @classmethod
    def from_domain(cls, domain) -> "DeliveryService":
        """Build a service on the domain's Order repository and configured retry bound."""
        custom = domain.config.get("custom") or {}
        max_retries = int(custom.get("max_transition_retries", DEFAULT_MAX_RETRIES))
        return cls(domain.repository_for(Order), max_retries=max_retries)

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def create_order(
        self,
        customer_id: str,
        items: list[dict],
        address: str,
        customer_lat: float | None = None,
        customer_lng: float | None = None,
        payment_method: str | None = None,
        pharmacy_id: str | None = None,
        pharmacy_name: str | None = None,
        pharmacy_address: str | None = None,
        total: float | None = None,
    ) -> Order:
        order = Order.create(
            customer_id=customer_id,
            items_data=items,
            address=address,
            customer_lat=customer_lat,
            customer_lng=customer_lng,
            payment_method=payment_method,
            pharmacy_id=pharmacy_id,
            pharmacy_name=pharmacy_name,
            pharmacy_address=pharmacy_address,
            total=total,
        )
        self._repository.add(order)
        logger.info("Order created", order_id=str(order.id), customer_id=customer_id, item_count=len(order.items))
        return order

    def assign_partner(
        self,
        order_id: str,
        partner_id: str,
        partner_name: str | None = None,
        partner_phone: str | None = None,
    ) -> Order:
        order, changed = self._write(
            order_id,
            lambda order: order.assign_partner(partner_id, partner_name, partner_phone),
        )
        if changed:
            logger.info("Delivery partner assigned", order_id=order_id, partner_id=partner_id)
        return order

    def transition(self, order_id: str, target_status: str, actor_id: str, at: datetime | None = None) -> Order:
        order, changed = self._write(
            order_id,
            lambda order: order.advance(target_status, actor_id, at),
        )
        if changed:
            logger.info("Order transitioned", order_id=order_id, status=order.status, actor_id=actor_id)
        else:
            logger.info("Order already in requested status", order_id=order_id, status=order.status, actor_id=actor_id)
        return order

    def report_location(self, order_id: str, lat: float, lng: float, at: datetime | None = None) -> None:
        _, applied = self._write(
            order_id,
            lambda order: order.report_location(lat, lng, at),
            bounded=False,
        )
        if not applied:
            logger.info("Ignored stale location report", order_id=order_id, reported_at=at)

    def record_payment(self, order_id: str) -> Order:
        order, _ = self._write(order_id, lambda order: order.record_payment())
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id: str) -> Order:
        try:
            return self._repository.get(order_id)
        except ObjectNotFoundError:
            raise OrderNotFoundError(order_id) from None

    def list_for_customer(self, customer_id: str) -> list[Order]:
        return self._repository.for_customer(customer_id)

    def list_for_partner(self, partner_id: str) -> list[Order]:
        return self._repository.for_partner(partner_id)

    def list_active_for_partner(self, partner_id: str) -> list[Order]:
        return self._repository.active_for_partner(partner_id)

    def list_delivered_for_partner(self, partner_id: str) -> list[Order]:
        return self._repository.delivered_for_partner(partner_id)

    def list_for_pharmacy(self, pharmacy_id: str) -> list[Order]:
        return self._repository.for_pharmacy(pharmacy_id)

    def get_destination(self, order_id: str) -> dict:
        """Where the partner is headed: the delivery address and its coordinates."""
        order = self.get_order(order_id)
        return {
            "order_id": str(order.id),
            "customer_id": str(order.customer_id),
            "address": order.address,
            "customer_lat": order.customer_lat,
            "customer_lng": order.customer_lng,
        }

    # -------------------------------------------------------------------
    # Conditional write loop
    # -------------------------------------------------------------------
    def _write(self, order_id: str, mutate, bounded: bool = True) -> tuple[Order, bool]:
        """Load, apply `mutate`, and write back if it changed anything.

        `mutate` returns False when the order is already in the requested
        state; nothing is written then. Returns the order and whether it was
        written. Business errors propagate at once; only ConflictError
        triggers another attempt; up to `max_retries` of them when `bounded`,
        otherwise until the write lands.
        """
        attempt = 0
        while True:
            attempt += 1
            order = self.get_order(order_id)
            if not mutate(order):
                return order, False
            try:
                return self._repository.save_if_current(order), True
            except ConflictError:
                if bounded and attempt > self.max_retries:
                    logger.warning("Giving up on order write after conflicts", order_id=order_id, attempts=attempt)
                    raise
                logger.info("Order write conflicted, retrying", order_id=order_id, attempt=attempt)
