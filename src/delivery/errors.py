"""Delivery lifecycle errors.

Every error carries a `kind` naming its category and a `context` dict with
enough detail (order id, current and requested states) for the presentation
layer to render a message. Only `ConflictError` is transient.
"""


class DeliveryError(Exception):
    """Base exception for all delivery lifecycle errors."""

    kind = "DeliveryError"

    def __init__(self, message: str, **context):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, **self.context}


class InvalidTransitionError(DeliveryError):
    """Raised when a status change skips a step, goes backwards or names an unknown status."""

    kind = "InvalidTransition"

    def __init__(self, current: str, requested: str, order_id: str | None = None):
        super().__init__(
            f"Cannot transition from {current} to {requested}",
            order_id=order_id,
            current_status=current,
            requested_status=requested,
        )


class TerminalStateError(DeliveryError):
    """Raised when a delivered order is asked to change."""

    kind = "TerminalState"

    def __init__(self, order_id: str | None = None, requested: str | None = None):
        super().__init__(
            "Order has already been delivered and accepts no further changes",
            order_id=order_id,
            current_status="delivered",
            requested_status=requested,
        )


class UnauthorizedActorError(DeliveryError):
    kind = "Unauthorized"

    def __init__(self, actor_id: str | None, partner_id: str | None, order_id: str | None = None):
        if partner_id is None:
            message = "No delivery partner is assigned to this order"
        else:
            message = f"Actor {actor_id} is not the delivery partner assigned to this order"
        super().__init__(message, order_id=order_id, actor_id=actor_id, partner_id=partner_id)


class InvalidCoordinateError(DeliveryError):
    kind = "InvalidCoordinate"

    def __init__(self, lat, lng):
        super().__init__(
            f"Coordinates out of range: lat={lat}, lng={lng}",
            lat=lat,
            lng=lng,
        )


class AlreadyAssignedError(DeliveryError):
    """Raised when a different partner is assigned to an order that already has one."""

    kind = "AlreadyAssigned"

    def __init__(self, order_id: str, partner_id: str, requested_partner_id: str):
        super().__init__(
            f"Order {order_id} is already assigned to partner {partner_id}",
            order_id=order_id,
            partner_id=partner_id,
            requested_partner_id=requested_partner_id,
        )


class ConflictError(DeliveryError):
    """Raised when the stored order moved on since the caller read it."""

    kind = "Conflict"

    def __init__(self, order_id: str, read_version: int | None = None):
        super().__init__(
            f"Order {order_id} was modified concurrently",
            order_id=order_id,
            read_version=read_version,
        )


class OrderNotFoundError(DeliveryError):
    kind = "NotFound"

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}", order_id=order_id)
