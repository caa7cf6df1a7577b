"""Integration tests for the order tracking projection."""

import json
from datetime import UTC, datetime, timedelta

from delivery.projections.order_tracking import OrderTrackingView
from delivery.service import DeliveryService
from protean import current_domain

PARTNER = "partner-proj-001"
T0 = datetime(2026, 3, 1, 10, 0, tzinfo=UTC)


def _service():
    return DeliveryService.from_domain(current_domain)


def _create_order():
    order = _service().create_order(
        customer_id="cust-proj-001",
        items=[{"name": "Vitamin D3", "quantity": 1, "unit_price": 6.0}],
        address="40 Queen Street, Glasgow",
    )
    return str(order.id)


def _view(order_id):
    return current_domain.repository_for(OrderTrackingView).get(order_id)


class TestOrderTrackingProjection:
    def test_view_created_on_order_created(self):
        order_id = _create_order()
        view = _view(order_id)
        assert view.current_status == "assigned"
        assert view.customer_id == "cust-proj-001"
        assert view.address == "40 Queen Street, Glasgow"

    def test_partner_details_on_assignment(self):
        order_id = _create_order()
        _service().assign_partner(order_id, PARTNER, "Mei", "+44 7700 900789")
        view = _view(order_id)
        assert view.partner_id == PARTNER
        assert view.partner_name == "Mei"
        assert view.partner_phone == "+44 7700 900789"

    def test_status_changes_extend_timeline(self):
        order_id = _create_order()
        service = _service()
        service.assign_partner(order_id, PARTNER)
        service.transition(order_id, "picked_up", PARTNER, T0)
        service.transition(order_id, "en_route", PARTNER, T0 + timedelta(minutes=5))

        view = _view(order_id)
        assert view.current_status == "en_route"
        timeline = json.loads(view.timeline_json)
        assert [entry["status"] for entry in timeline] == ["assigned", "picked_up", "en_route"]

    def test_location_updates_view(self):
        order_id = _create_order()
        service = _service()
        service.assign_partner(order_id, PARTNER)
        service.report_location(order_id, 55.86, -4.25, T0)

        view = _view(order_id)
        assert (view.partner_lat, view.partner_lng) == (55.86, -4.25)
        assert view.location_updated_at == T0

    def test_delivery_recorded(self):
        order_id = _create_order()
        service = _service()
        service.assign_partner(order_id, PARTNER)
        for offset, status in enumerate(("picked_up", "en_route", "out_for_delivery", "delivered"), start=1):
            service.transition(order_id, status, PARTNER, T0 + timedelta(minutes=offset))

        view = _view(order_id)
        assert view.current_status == "delivered"
        assert view.delivered_at == T0 + timedelta(minutes=4)
