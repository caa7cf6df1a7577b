"""Order tracking — customer-facing live tracking view."""

import json

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.events import (
    DeliveryStatusChanged,
    OrderCreated,
    OrderDelivered,
    PartnerAssigned,
    PartnerLocationUpdated,
)
from delivery.order.order import Order


@delivery.projection
class OrderTrackingView:
    order_id = Identifier(identifier=True, required=True)
    customer_id = Identifier(required=True)
    address = String()
    partner_id = Identifier()
    partner_name = String()
    partner_phone = String()
    current_status = String(required=True)
    partner_lat = Float()
    partner_lng = Float()
    location_updated_at = DateTime()
    timeline_json = Text()  # JSON list of status changes
    delivered_at = DateTime()


def _append_timeline(view, status, occurred_at):
    timeline = json.loads(view.timeline_json) if view.timeline_json else []
    timeline.append(
        {
            "status": status,
            "occurred_at": occurred_at.isoformat() if occurred_at else None,
        }
    )
    view.timeline_json = json.dumps(timeline)


@delivery.projector(projector_for=OrderTrackingView, aggregates=[Order])
class OrderTrackingProjector:
    @on(OrderCreated)
    def on_order_created(self, event):
        view = OrderTrackingView(
            order_id=event.order_id,
            customer_id=event.customer_id,
            address=event.address,
            current_status="assigned",
        )
        _append_timeline(view, "assigned", event.created_at)
        current_domain.repository_for(OrderTrackingView).add(view)

    @on(PartnerAssigned)
    def on_partner_assigned(self, event):
        repo = current_domain.repository_for(OrderTrackingView)
        view = repo.get(event.order_id)
        view.partner_id = event.partner_id
        view.partner_name = event.partner_name
        view.partner_phone = event.partner_phone
        repo.add(view)

    @on(DeliveryStatusChanged)
    def on_delivery_status_changed(self, event):
        repo = current_domain.repository_for(OrderTrackingView)
        view = repo.get(event.order_id)
        view.current_status = event.new_status
        _append_timeline(view, event.new_status, event.occurred_at)
        repo.add(view)

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        repo = current_domain.repository_for(OrderTrackingView)
        view = repo.get(event.order_id)
        view.delivered_at = event.delivered_at
        repo.add(view)

    @on(PartnerLocationUpdated)
    def on_partner_location_updated(self, event):
        repo = current_domain.repository_for(OrderTrackingView)
        view = repo.get(event.order_id)
        view.partner_lat = event.lat
        view.partner_lng = event.lng
        view.location_updated_at = event.reported_at
        repo.add(view)
