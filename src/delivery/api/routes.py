"""FastAPI routes for the Delivery domain."""

import json

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from delivery.api.schemas import (
    AssignPartnerRequest,
    CreateOrderRequest,
    DestinationResponse,
    OrderResponse,
    ReportLocationRequest,
    StatusResponse,
    TrackingViewResponse,
    TransitionRequest,
)
from delivery.errors import DeliveryError
from delivery.projections.order_tracking import OrderTrackingView
from delivery.service import DeliveryService

_STATUS_BY_KIND = {
    "NotFound": 404,
    "Unauthorized": 403,
    "InvalidCoordinate": 422,
    "InvalidTransition": 409,
    "TerminalState": 409,
    "AlreadyAssigned": 409,
    "Conflict": 409,
}


def _service() -> DeliveryService:
    return DeliveryService.from_domain(current_domain)


def register_delivery_exception_handlers(app: FastAPI) -> None:
    """Render DeliveryError kinds as HTTP errors with their context."""

    @app.exception_handler(DeliveryError)
    async def delivery_error_handler(request: Request, exc: DeliveryError) -> JSONResponse:
        return JSONResponse(
            status_code=_STATUS_BY_KIND.get(exc.kind, 400),
            content={"error": exc.to_dict()},
        )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(body: CreateOrderRequest) -> OrderResponse:
    """Create a delivery order in the assigned state."""
    order = _service().create_order(
        customer_id=body.customer_id,
        items=[item.model_dump() for item in body.items],
        address=body.address,
        customer_lat=body.customer_lat,
        customer_lng=body.customer_lng,
        payment_method=body.payment_method,
        pharmacy_id=body.pharmacy_id,
        pharmacy_name=body.pharmacy_name,
        pharmacy_address=body.pharmacy_address,
        total=body.total,
    )
    return OrderResponse.from_order(order)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(_service().get_order(order_id))


@order_router.put("/{order_id}/partner", response_model=OrderResponse)
async def assign_partner(order_id: str, body: AssignPartnerRequest) -> OrderResponse:
    """Assign the delivery partner, snapshotting their name and phone."""
    order = _service().assign_partner(
        order_id,
        partner_id=body.partner_id,
        partner_name=body.partner_name,
        partner_phone=body.partner_phone,
    )
    return OrderResponse.from_order(order)


@order_router.patch("/{order_id}/status", response_model=OrderResponse)
async def transition(order_id: str, body: TransitionRequest) -> OrderResponse:
    """Advance the order to the next delivery status."""
    order = _service().transition(order_id, body.status, body.actor_id, body.at)
    return OrderResponse.from_order(order)


@order_router.patch("/{order_id}/location", response_model=StatusResponse)
async def report_location(order_id: str, body: ReportLocationRequest) -> StatusResponse:
    """Record the partner's live position."""
    _service().report_location(order_id, body.lat, body.lng, body.at)
    return StatusResponse(status="location_recorded")


@order_router.put("/{order_id}/payment", response_model=OrderResponse)
async def record_payment(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(_service().record_payment(order_id))


@order_router.get("/{order_id}/destination", response_model=DestinationResponse)
async def get_destination(order_id: str) -> DestinationResponse:
    """Delivery address and coordinates for the partner's navigation."""
    return DestinationResponse(**_service().get_destination(order_id))


@order_router.get("/{order_id}/tracking", response_model=TrackingViewResponse)
async def get_tracking(order_id: str) -> TrackingViewResponse:
    """Customer-facing live tracking view."""
    _service().get_order(order_id)
    view = current_domain.repository_for(OrderTrackingView).get(order_id)
    return TrackingViewResponse(
        order_id=str(view.order_id),
        current_status=view.current_status,
        partner_name=view.partner_name,
        partner_phone=view.partner_phone,
        partner_lat=view.partner_lat,
        partner_lng=view.partner_lng,
        location_updated_at=view.location_updated_at,
        timeline=json.loads(view.timeline_json) if view.timeline_json else [],
        delivered_at=view.delivered_at,
    )


# ---------------------------------------------------------------------------
# Lookup Router
# ---------------------------------------------------------------------------
lookup_router = APIRouter(tags=["orders"])


@lookup_router.get("/customers/{customer_id}/orders", response_model=list[OrderResponse])
async def list_customer_orders(customer_id: str) -> list[OrderResponse]:
    return [OrderResponse.from_order(order) for order in _service().list_for_customer(customer_id)]


@lookup_router.get("/partners/{partner_id}/orders", response_model=list[OrderResponse])
async def list_partner_orders(partner_id: str, active: bool = False) -> list[OrderResponse]:
    """Orders assigned to a partner; `active=true` keeps only undelivered ones."""
    service = _service()
    orders = service.list_active_for_partner(partner_id) if active else service.list_for_partner(partner_id)
    return [OrderResponse.from_order(order) for order in orders]


@lookup_router.get("/partners/{partner_id}/history", response_model=list[OrderResponse])
async def list_partner_history(partner_id: str) -> list[OrderResponse]:
    """Orders the partner has delivered, most recently delivered first."""
    return [OrderResponse.from_order(order) for order in _service().list_delivered_for_partner(partner_id)]


@lookup_router.get("/pharmacies/{pharmacy_id}/orders", response_model=list[OrderResponse])
async def list_pharmacy_orders(pharmacy_id: str) -> list[OrderResponse]:
    return [OrderResponse.from_order(order) for order in _service().list_for_pharmacy(pharmacy_id)]
