"""Tests for the delivery state machine — valid and invalid transitions."""

import pytest
from delivery.errors import InvalidTransitionError, TerminalStateError, UnauthorizedActorError
from delivery.order.lifecycle import (
    DeliveryStatus,
    check_transition,
    has_reached,
    next_status,
    parse_status,
)
from delivery.order.order import Order

PARTNER = "partner-001"


def _make_order():
    order = Order.create(
        customer_id="cust-001",
        items_data=[{"name": "Paracetamol 500mg", "quantity": 2, "unit_price": 3.5}],
        address="12 Baker Street, London",
    )
    order.assign_partner(PARTNER, "Ravi", "+44 7700 900123")
    return order


def _advance_to(order, status):
    for step in ("picked_up", "en_route", "out_for_delivery", "delivered"):
        if order.status == status:
            break
        order.advance(step, PARTNER)
    return order


class TestSequence:
    def test_next_status_follows_declared_order(self):
        assert next_status(DeliveryStatus.ASSIGNED) == DeliveryStatus.PICKED_UP
        assert next_status(DeliveryStatus.PICKED_UP) == DeliveryStatus.EN_ROUTE
        assert next_status(DeliveryStatus.EN_ROUTE) == DeliveryStatus.OUT_FOR_DELIVERY
        assert next_status(DeliveryStatus.OUT_FOR_DELIVERY) == DeliveryStatus.DELIVERED

    def test_delivered_has_no_next_status(self):
        assert next_status(DeliveryStatus.DELIVERED) is None

    def test_has_reached(self):
        assert has_reached(DeliveryStatus.EN_ROUTE, DeliveryStatus.PICKED_UP)
        assert has_reached(DeliveryStatus.PICKED_UP, DeliveryStatus.PICKED_UP)
        assert not has_reached(DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP)

    def test_parse_unknown_status_is_invalid_transition(self):
        with pytest.raises(InvalidTransitionError) as exc:
            parse_status("teleported", DeliveryStatus.ASSIGNED, order_id="ord-1")
        assert exc.value.context["requested_status"] == "teleported"
        assert exc.value.context["current_status"] == "assigned"

    def test_same_status_is_a_no_op(self):
        assert check_transition(DeliveryStatus.EN_ROUTE, DeliveryStatus.EN_ROUTE) is False

    def test_one_step_forward_is_allowed(self):
        assert check_transition(DeliveryStatus.EN_ROUTE, DeliveryStatus.OUT_FOR_DELIVERY) is True


class TestValidTransitions:
    def test_assigned_to_picked_up(self):
        order = _make_order()
        assert order.advance("picked_up", PARTNER) is True
        assert order.status == DeliveryStatus.PICKED_UP.value
        assert order.picked_up is True
        assert order.picked_up_at is not None

    def test_picked_up_to_en_route(self):
        order = _advance_to(_make_order(), "picked_up")
        order.advance("en_route", PARTNER)
        assert order.status == DeliveryStatus.EN_ROUTE.value

    def test_en_route_to_out_for_delivery(self):
        order = _advance_to(_make_order(), "en_route")
        order.advance("out_for_delivery", PARTNER)
        assert order.status == DeliveryStatus.OUT_FOR_DELIVERY.value

    def test_out_for_delivery_to_delivered(self):
        order = _advance_to(_make_order(), "out_for_delivery")
        order.advance("delivered", PARTNER)
        assert order.status == DeliveryStatus.DELIVERED.value
        assert order.delivered is True
        assert order.delivered_at is not None

    def test_full_walk_records_every_status_in_order(self):
        order = _advance_to(_make_order(), "delivered")
        assert [change.status for change in order.history] == [
            "assigned",
            "picked_up",
            "en_route",
            "out_for_delivery",
            "delivered",
        ]

    def test_history_timestamps_do_not_decrease(self):
        order = _advance_to(_make_order(), "delivered")
        stamps = [change.at for change in order.history]
        assert stamps == sorted(stamps)

    def test_accepts_enum_values(self):
        order = _make_order()
        order.advance(DeliveryStatus.PICKED_UP, PARTNER)
        assert order.status == "picked_up"


class TestNoOpTransitions:
    def test_repeating_current_status_changes_nothing(self):
        order = _advance_to(_make_order(), "picked_up")
        history_before = len(order.history)
        picked_up_at = order.picked_up_at

        assert order.advance("picked_up", PARTNER) is False
        assert len(order.history) == history_before
        assert order.picked_up_at == picked_up_at

    def test_no_op_raises_no_event(self):
        order = _advance_to(_make_order(), "en_route")
        order._events.clear()
        order.advance("en_route", PARTNER)
        assert len(order._events) == 0


class TestInvalidTransitions:
    def test_cannot_skip_a_step(self):
        order = _make_order()
        with pytest.raises(InvalidTransitionError) as exc:
            order.advance("en_route", PARTNER)
        assert exc.value.context["current_status"] == "assigned"
        assert exc.value.context["requested_status"] == "en_route"
        assert order.status == "assigned"

    def test_cannot_jump_to_delivered(self):
        order = _advance_to(_make_order(), "picked_up")
        with pytest.raises(InvalidTransitionError):
            order.advance("delivered", PARTNER)

    def test_cannot_go_backwards(self):
        order = _advance_to(_make_order(), "out_for_delivery")
        with pytest.raises(InvalidTransitionError):
            order.advance("en_route", PARTNER)

    def test_cannot_return_to_assigned(self):
        order = _advance_to(_make_order(), "picked_up")
        with pytest.raises(InvalidTransitionError):
            order.advance("assigned", PARTNER)

    def test_unknown_status_is_rejected(self):
        order = _make_order()
        with pytest.raises(InvalidTransitionError):
            order.advance("lost", PARTNER)

    def test_rejected_transition_leaves_history_untouched(self):
        order = _advance_to(_make_order(), "picked_up")
        with pytest.raises(InvalidTransitionError):
            order.advance("delivered", PARTNER)
        assert [change.status for change in order.history] == ["assigned", "picked_up"]


class TestTerminalState:
    @pytest.mark.parametrize("status", ["assigned", "picked_up", "en_route", "out_for_delivery", "delivered"])
    def test_delivered_order_rejects_every_status(self, status):
        order = _advance_to(_make_order(), "delivered")
        with pytest.raises(TerminalStateError) as exc:
            order.advance(status, PARTNER)
        assert exc.value.kind == "TerminalState"

    def test_delivered_order_rejects_unknown_status_as_terminal(self):
        order = _advance_to(_make_order(), "delivered")
        with pytest.raises(TerminalStateError):
            order.advance("teleported", PARTNER)


class TestActorAuthorization:
    def test_other_actor_is_rejected(self):
        order = _make_order()
        with pytest.raises(UnauthorizedActorError) as exc:
            order.advance("picked_up", "partner-999")
        assert exc.value.context["actor_id"] == "partner-999"
        assert order.status == "assigned"

    def test_order_without_partner_cannot_advance(self):
        order = Order.create(
            customer_id="cust-001",
            items_data=[],
            address="12 Baker Street, London",
        )
        with pytest.raises(UnauthorizedActorError):
            order.advance("picked_up", PARTNER)

    def test_actor_is_checked_before_the_sequence(self):
        order = _make_order()
        with pytest.raises(UnauthorizedActorError):
            order.advance("delivered", "partner-999")

    def test_repeated_status_from_other_actor_is_rejected(self):
        order = _advance_to(_make_order(), "picked_up")
        history_before = len(order.history)
        with pytest.raises(UnauthorizedActorError):
            order.advance("picked_up", "partner-999")
        assert len(order.history) == history_before
