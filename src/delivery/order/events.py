"""Delivery domain events — immutable facts about order delivery state changes.

All events are past tense and versioned. They are the notifications the
presentation and notification layers subscribe to; how they are pushed to
devices is outside this domain.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from delivery.domain import delivery


@delivery.event(part_of="Order")
class OrderCreated:
    """A delivery order was created in the assigned state."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    pharmacy_id = Identifier()
    address = String(required=True)
    items = Text(required=True)  # JSON list of item dicts
    item_count = Integer(required=True)
    total = Float(required=True)
    payment_method = String(required=True)
    created_at = DateTime(required=True)


@delivery.event(part_of="Order")
class PartnerAssigned:
    """A delivery partner was assigned to the order."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    partner_name = String()
    partner_phone = String()
    assigned_at = DateTime(required=True)


@delivery.event(part_of="Order")
class DeliveryStatusChanged:
    """The order advanced one step along the delivery sequence."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    occurred_at = DateTime(required=True)


@delivery.event(part_of="Order")
class OrderPickedUp:
    """The partner collected the order from the pharmacy."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    picked_up_at = DateTime(required=True)


@delivery.event(part_of="Order")
class OrderDelivered:
    """The partner handed the order to the customer."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    payment_status = String(required=True)
    delivered_at = DateTime(required=True)


@delivery.event(part_of="Order")
class PartnerLocationUpdated:
    """The partner reported a new position for an order in flight."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    partner_id = Identifier()
    lat = Float(required=True)
    lng = Float(required=True)
    reported_at = DateTime(required=True)


@delivery.event(part_of="Order")
class PaymentRecorded:
    """Payment for the order was recorded as received."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    payment_method = String(required=True)
    amount = Float(required=True)
    recorded_at = DateTime(required=True)
