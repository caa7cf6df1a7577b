"""Location tracking — the partner's live position and hand-over confirmations.

Position reports are last-write-wins by report time: a report that arrives
after a newer one has been stored is discarded, tolerating out-of-order
delivery from mobile clients.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, Identifier

from delivery.domain import delivery
from delivery.errors import InvalidCoordinateError

LAT_RANGE = (-90.0, 90.0)
LNG_RANGE = (-180.0, 180.0)

TRACKING_FIELDS = (
    "lat",
    "lng",
    "last_updated_at",
    "picked_up_at",
    "picked_up_by",
    "delivered_at",
    "delivered_by",
)


@delivery.value_object(part_of="Order")
class Tracking:
    """Latest partner position plus who picked up and delivered the order, and when."""

    lat = Float(min_value=LAT_RANGE[0], max_value=LAT_RANGE[1])
    lng = Float(min_value=LNG_RANGE[0], max_value=LNG_RANGE[1])
    last_updated_at = DateTime()
    picked_up_at = DateTime()
    picked_up_by = Identifier()
    delivered_at = DateTime()
    delivered_by = Identifier()


def ensure_utc(moment: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps so reports from any client compare safely."""
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=UTC)


def validate_coordinates(lat, lng) -> tuple[float, float]:
    """Return (lat, lng) as floats, or raise InvalidCoordinateError."""
    if isinstance(lat, bool) or isinstance(lng, bool):
        raise InvalidCoordinateError(lat, lng)
    try:
        lat_value, lng_value = float(lat), float(lng)
    except (TypeError, ValueError):
        raise InvalidCoordinateError(lat, lng) from None

    if not (LAT_RANGE[0] <= lat_value <= LAT_RANGE[1]) or not (LNG_RANGE[0] <= lng_value <= LNG_RANGE[1]):
        raise InvalidCoordinateError(lat, lng)
    return lat_value, lng_value


def is_stale(reported_at: datetime, last_updated_at: datetime | None) -> bool:
    """True when a report is older than the position already stored."""
    if last_updated_at is None:
        return False
    return ensure_utc(reported_at) < ensure_utc(last_updated_at)


def tracking_with(current: Tracking | None, **changes) -> Tracking:
    """Copy `current` with `changes` applied; value objects are replaced wholesale."""
    values = {name: getattr(current, name) for name in TRACKING_FIELDS} if current else {}
    values.update(changes)
    return Tracking(**values)
