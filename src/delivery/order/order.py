"""Order aggregate (CQRS) — one pharmacy delivery job.

The Order ties a customer, a delivery partner and a set of items to a delivery
status, an append-only status history and the partner's location trail. It is
persisted as current state; every change raises a domain event.

State Machine (see delivery.order.lifecycle):
    ASSIGNED → PICKED_UP → EN_ROUTE → OUT_FOR_DELIVERY → DELIVERED

All mutation goes through `advance`, `report_location`, `assign_partner` and
`record_payment`, which keep the status history, the hand-over timestamps and
the tracking block consistent with `status`.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from delivery.domain import delivery
from delivery.errors import AlreadyAssignedError, TerminalStateError, UnauthorizedActorError
from delivery.order.events import (
    DeliveryStatusChanged,
    OrderCreated,
    OrderDelivered,
    OrderPickedUp,
    PartnerAssigned,
    PartnerLocationUpdated,
    PaymentRecorded,
)
from delivery.order.lifecycle import (
    TERMINAL_STATUSES,
    DeliveryStatus,
    check_transition,
    has_reached,
    parse_status,
)
from delivery.order.tracking import (
    Tracking,
    ensure_utc,
    is_stale,
    tracking_with,
    validate_coordinates,
)


class PaymentStatus(Enum):
    UNPAID = "unpaid"
    PAID = "paid"


DEFAULT_PAYMENT_METHOD = "cash"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@delivery.entity(part_of="Order")
class OrderItem:
    """A medicine line on the order."""

    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(min_value=0.0, default=0.0)
    position = Integer(required=True, min_value=1)


@delivery.entity(part_of="Order")
class StatusChange:
    """One entry of the delivery status history."""

    status = String(required=True, choices=DeliveryStatus)
    at = DateTime(required=True)
    sequence = Integer(required=True, min_value=1)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@delivery.aggregate
class Order:
    # Parties
    customer_id = Identifier(required=True)
    pharmacy_id = Identifier()
    pharmacy_name = String(max_length=255)
    pharmacy_address = String(max_length=500)
    delivery_partner_id = Identifier()

    # Partner snapshot taken at assignment; not kept in sync with the partner's profile
    delivery_partner_name = String(max_length=100)
    delivery_partner_phone = String(max_length=30)
    partner_assigned_at = DateTime()

    # Commercial
    items = HasMany(OrderItem)
    total = Float(min_value=0.0, default=0.0)
    payment_method = String(max_length=50, default=DEFAULT_PAYMENT_METHOD)
    payment_status = String(
        choices=PaymentStatus,
        default=PaymentStatus.UNPAID.value,
    )

    # Delivery
    address = String(required=True, max_length=500)
    status = String(
        choices=DeliveryStatus,
        default=DeliveryStatus.ASSIGNED.value,
    )
    status_history = HasMany(StatusChange)
    picked_up_at = DateTime()
    delivered_at = DateTime()

    # Location
    customer_lat = Float(min_value=-90.0, max_value=90.0)
    customer_lng = Float(min_value=-180.0, max_value=180.0)
    delivery_lat = Float(min_value=-90.0, max_value=90.0)
    delivery_lng = Float(min_value=-180.0, max_value=180.0)
    tracking = ValueObject(Tracking)

    # Count of successful updates, bumped by the repository on every conditional write
    revision = Integer(default=0)

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def total_cannot_be_negative(self):
        if self.total is not None and self.total < 0:
            raise ValidationError({"total": ["Order total cannot be negative"]})

    @invariant.post
    def history_ends_at_current_status(self):
        history = self.history
        if history and history[-1].status != self.status:
            raise ValidationError({"status_history": ["Last history entry must match the current status"]})

    @invariant.post
    def delivered_at_is_set_only_when_delivered(self):
        if (self.delivered_at is not None) != (self.status == DeliveryStatus.DELIVERED.value):
            raise ValidationError({"delivered_at": ["Delivery time is recorded exactly when the order is delivered"]})

    @invariant.post
    def partner_required_past_assignment(self):
        if self.status != DeliveryStatus.ASSIGNED.value and not self.delivery_partner_id:
            raise ValidationError({"delivery_partner_id": ["A delivery partner is required once the order moves"]})

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED.value

    @property
    def picked_up(self) -> bool:
        return has_reached(DeliveryStatus(self.status), DeliveryStatus.PICKED_UP)

    @property
    def history(self) -> list:
        """Status history in the order the entries were appended."""
        return sorted(self.status_history or [], key=lambda change: change.sequence)

    @property
    def line_items(self) -> list:
        return sorted(self.items or [], key=lambda item: item.position)

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id: str,
        items_data: list[dict],
        address: str,
        customer_lat: float | None = None,
        customer_lng: float | None = None,
        payment_method: str | None = None,
        pharmacy_id: str | None = None,
        pharmacy_name: str | None = None,
        pharmacy_address: str | None = None,
        total: float | None = None,
    ):
        """Create a new delivery order in the assigned state.

        `items_data` may be empty for service orders that carry no items.
        When `total` is omitted it is derived from the items.
        """
        if not customer_id:
            raise ValidationError({"customer_id": ["Customer is required"]})
        if not address or not address.strip():
            raise ValidationError({"address": ["Delivery address is required"]})

        if customer_lat is not None or customer_lng is not None:
            customer_lat, customer_lng = validate_coordinates(customer_lat, customer_lng)

        items_data = items_data or []

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            pharmacy_id=pharmacy_id,
            pharmacy_name=pharmacy_name,
            pharmacy_address=pharmacy_address,
            address=address.strip(),
            customer_lat=customer_lat,
            customer_lng=customer_lng,
            total=total if total is not None else 0.0,
            payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
            payment_status=PaymentStatus.UNPAID.value,
            status=DeliveryStatus.ASSIGNED.value,
            created_at=now,
            updated_at=now,
        )
        for position, item_data in enumerate(items_data, start=1):
            order.add_items(
                OrderItem(
                    name=item_data.get("name"),
                    quantity=item_data.get("quantity", 1),
                    unit_price=item_data.get("unit_price", 0.0),
                    position=position,
                )
            )
        if total is None:
            order.total = round(sum(item.quantity * (item.unit_price or 0.0) for item in order.items), 2)
        order.add_status_history(StatusChange(status=DeliveryStatus.ASSIGNED.value, at=now, sequence=1))

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                customer_id=customer_id,
                pharmacy_id=pharmacy_id,
                address=order.address,
                items=json.dumps(items_data),
                item_count=len(items_data),
                total=order.total,
                payment_method=order.payment_method,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Partner assignment
    # -------------------------------------------------------------------
    def assign_partner(
        self,
        partner_id: str,
        partner_name: str | None = None,
        partner_phone: str | None = None,
    ) -> bool:
        """Assign the delivery partner once. Returns False if it was already this partner."""
        if not partner_id:
            raise ValidationError({"partner_id": ["Delivery partner is required"]})

        if self.delivery_partner_id:
            if str(self.delivery_partner_id) == str(partner_id):
                return False
            raise AlreadyAssignedError(str(self.id), str(self.delivery_partner_id), str(partner_id))

        now = datetime.now(UTC)
        with atomic_change(self):
            self.delivery_partner_id = partner_id
            self.delivery_partner_name = partner_name
            self.delivery_partner_phone = partner_phone
            self.partner_assigned_at = now
            self.updated_at = now
        self.raise_(
            PartnerAssigned(
                order_id=str(self.id),
                partner_id=partner_id,
                partner_name=partner_name,
                partner_phone=partner_phone,
                assigned_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def advance(self, target_status: str, actor_id: str, occurred_at: datetime | None = None) -> bool:
        """Move the order one step along the delivery sequence.

        Returns False when `target_status` is already the current status, in
        which case nothing changes.
        """
        order_id = str(self.id)
        current = DeliveryStatus(self.status)
        if current in TERMINAL_STATUSES:
            raise TerminalStateError(order_id=order_id, requested=str(target_status))

        target = parse_status(target_status, current, order_id=order_id)
        if not self.delivery_partner_id or str(actor_id) != str(self.delivery_partner_id):
            raise UnauthorizedActorError(actor_id, self.delivery_partner_id, order_id=order_id)

        if not check_transition(current, target, order_id=order_id):
            return False

        at = ensure_utc(occurred_at) or datetime.now(UTC)
        next_sequence = max((change.sequence for change in self.status_history or []), default=0) + 1

        with atomic_change(self):
            self.status = target.value
            self.add_status_history(StatusChange(status=target.value, at=at, sequence=next_sequence))
            if target == DeliveryStatus.PICKED_UP:
                self.picked_up_at = at
                self.tracking = tracking_with(self.tracking, picked_up_at=at, picked_up_by=actor_id)
            elif target == DeliveryStatus.DELIVERED:
                self.delivered_at = at
                # Cash is collected at the door; prepaid orders are already paid
                self.payment_status = PaymentStatus.PAID.value
                self.tracking = tracking_with(self.tracking, delivered_at=at, delivered_by=actor_id)
            self.updated_at = datetime.now(UTC)

        self.raise_(
            DeliveryStatusChanged(
                order_id=order_id,
                customer_id=str(self.customer_id),
                partner_id=str(self.delivery_partner_id),
                previous_status=current.value,
                new_status=target.value,
                occurred_at=at,
            )
        )
        if target == DeliveryStatus.PICKED_UP:
            self.raise_(
                OrderPickedUp(
                    order_id=order_id,
                    partner_id=str(actor_id),
                    picked_up_at=at,
                )
            )
        elif target == DeliveryStatus.DELIVERED:
            self.raise_(
                OrderDelivered(
                    order_id=order_id,
                    customer_id=str(self.customer_id),
                    partner_id=str(actor_id),
                    payment_status=self.payment_status,
                    delivered_at=at,
                )
            )
        return True

    # -------------------------------------------------------------------
    # Location tracking
    # -------------------------------------------------------------------
    def report_location(self, lat: float, lng: float, occurred_at: datetime | None = None) -> bool:
        """Record the partner's position. Returns False if the report was older than the stored one."""
        if DeliveryStatus(self.status) in TERMINAL_STATUSES:
            raise TerminalStateError(order_id=str(self.id))

        lat, lng = validate_coordinates(lat, lng)
        at = ensure_utc(occurred_at) or datetime.now(UTC)
        if is_stale(at, self.tracking.last_updated_at if self.tracking else None):
            return False

        with atomic_change(self):
            self.delivery_lat = lat
            self.delivery_lng = lng
            self.tracking = tracking_with(self.tracking, lat=lat, lng=lng, last_updated_at=at)
            self.updated_at = datetime.now(UTC)

        self.raise_(
            PartnerLocationUpdated(
                order_id=str(self.id),
                partner_id=self.delivery_partner_id,
                lat=lat,
                lng=lng,
                reported_at=at,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment(self) -> bool:
        """Mark the order paid. Returns False if it already was."""
        if self.payment_status == PaymentStatus.PAID.value:
            return False

        now = datetime.now(UTC)
        with atomic_change(self):
            self.payment_status = PaymentStatus.PAID.value
            self.updated_at = now
        self.raise_(
            PaymentRecorded(
                order_id=str(self.id),
                payment_method=self.payment_method,
                amount=self.total,
                recorded_at=now,
            )
        )
        return True
