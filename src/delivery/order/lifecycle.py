"""Delivery state machine — the fixed forward sequence of delivery statuses.

State Machine:
    ASSIGNED → PICKED_UP → EN_ROUTE → OUT_FOR_DELIVERY → DELIVERED

Every transition moves exactly one step forward. DELIVERED is terminal.
Requesting the status an order is already in is a no-op so that clients
retrying a request after a dropped response do not see an error.
"""

from enum import Enum

from delivery.errors import InvalidTransitionError, TerminalStateError


class DeliveryStatus(Enum):
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    EN_ROUTE = "en_route"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"


# Enum definition order is the delivery order
STATUS_SEQUENCE = tuple(DeliveryStatus)

TERMINAL_STATUSES = {DeliveryStatus.DELIVERED}


def rank(status: DeliveryStatus) -> int:
    """Position of `status` in the delivery sequence, starting at 0."""
    return STATUS_SEQUENCE.index(status)


def has_reached(current: DeliveryStatus, milestone: DeliveryStatus) -> bool:
    return rank(current) >= rank(milestone)


def next_status(current: DeliveryStatus) -> DeliveryStatus | None:
    """The only status `current` may move to, or None when terminal."""
    position = rank(current) + 1
    if position >= len(STATUS_SEQUENCE):
        return None
    return STATUS_SEQUENCE[position]


def parse_status(value: str | DeliveryStatus, current: DeliveryStatus, order_id: str | None = None) -> DeliveryStatus:
    """Resolve a requested status value, rejecting names outside the sequence."""
    if isinstance(value, DeliveryStatus):
        return value
    try:
        return DeliveryStatus(value)
    except ValueError:
        raise InvalidTransitionError(current.value, str(value), order_id=order_id) from None


def check_transition(current: DeliveryStatus, target: DeliveryStatus, order_id: str | None = None) -> bool:
    """Validate moving from `current` to `target`.

    Returns False when the request is a no-op (target is the current status)
    and True when the order must advance. Raises TerminalStateError for any
    request against a terminal order and InvalidTransitionError for skips and
    regressions.
    """
    if current in TERMINAL_STATUSES:
        raise TerminalStateError(order_id=order_id, requested=target.value)
    if target == current:
        return False
    if target != next_status(current):
        raise InvalidTransitionError(current.value, target.value, order_id=order_id)
    return True
