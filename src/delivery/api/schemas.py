"""Pydantic API schemas for the Delivery domain.

These are the external API contracts, separate from the domain model.
The API layer translates between these schemas and the Delivery service.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    name: str
    quantity: int = 1
    unit_price: float = 0.0


class CreateOrderRequest(BaseModel):
    customer_id: str
    items: list[OrderItemRequest] = Field(default_factory=list)
    address: str
    customer_lat: float | None = None
    customer_lng: float | None = None
    payment_method: str | None = None
    pharmacy_id: str | None = None
    pharmacy_name: str | None = None
    pharmacy_address: str | None = None
    total: float | None = None


class AssignPartnerRequest(BaseModel):
    partner_id: str
    partner_name: str | None = None
    partner_phone: str | None = None


class TransitionRequest(BaseModel):
    status: str
    actor_id: str
    at: datetime | None = None


class ReportLocationRequest(BaseModel):
    lat: float
    lng: float
    at: datetime | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str


class OrderItemResponse(BaseModel):
    name: str
    quantity: int
    unit_price: float


class StatusChangeResponse(BaseModel):
    status: str
    at: datetime


class TrackingResponse(BaseModel):
    lat: float | None = None
    lng: float | None = None
    last_updated_at: datetime | None = None
    picked_up_at: datetime | None = None
    picked_up_by: str | None = None
    delivered_at: datetime | None = None
    delivered_by: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    pharmacy_id: str | None = None
    pharmacy_name: str | None = None
    pharmacy_address: str | None = None
    delivery_partner_id: str | None = None
    delivery_partner_name: str | None = None
    delivery_partner_phone: str | None = None
    items: list[OrderItemResponse]
    total: float
    payment_method: str
    payment_status: str
    address: str
    status: str
    delivery_status_history: list[StatusChangeResponse]
    picked_up: bool
    picked_up_at: datetime | None = None
    delivered: bool
    delivered_at: datetime | None = None
    customer_lat: float | None = None
    customer_lng: float | None = None
    delivery_lat: float | None = None
    delivery_lng: float | None = None
    tracking: TrackingResponse
    revision: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        tracking = order.tracking
        return cls(
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            pharmacy_id=order.pharmacy_id,
            pharmacy_name=order.pharmacy_name,
            pharmacy_address=order.pharmacy_address,
            delivery_partner_id=order.delivery_partner_id,
            delivery_partner_name=order.delivery_partner_name,
            delivery_partner_phone=order.delivery_partner_phone,
            items=[
                OrderItemResponse(name=item.name, quantity=item.quantity, unit_price=item.unit_price or 0.0)
                for item in order.line_items
            ],
            total=order.total,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            address=order.address,
            status=order.status,
            delivery_status_history=[
                StatusChangeResponse(status=change.status, at=change.at) for change in order.history
            ],
            picked_up=order.picked_up,
            picked_up_at=order.picked_up_at,
            delivered=order.delivered,
            delivered_at=order.delivered_at,
            customer_lat=order.customer_lat,
            customer_lng=order.customer_lng,
            delivery_lat=order.delivery_lat,
            delivery_lng=order.delivery_lng,
            tracking=TrackingResponse(
                lat=tracking.lat if tracking else None,
                lng=tracking.lng if tracking else None,
                last_updated_at=tracking.last_updated_at if tracking else None,
                picked_up_at=tracking.picked_up_at if tracking else None,
                picked_up_by=tracking.picked_up_by if tracking else None,
                delivered_at=tracking.delivered_at if tracking else None,
                delivered_by=tracking.delivered_by if tracking else None,
            ),
            revision=order.revision,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class DestinationResponse(BaseModel):
    order_id: str
    customer_id: str
    address: str
    customer_lat: float | None = None
    customer_lng: float | None = None


class TrackingViewResponse(BaseModel):
    order_id: str
    current_status: str
    partner_name: str | None = None
    partner_phone: str | None = None
    partner_lat: float | None = None
    partner_lng: float | None = None
    location_updated_at: datetime | None = None
    timeline: list[dict]
    delivered_at: datetime | None = None
