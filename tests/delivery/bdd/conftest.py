"""Shared BDD fixtures and step definitions for the Delivery domain."""

import pytest
from delivery.errors import DeliveryError
from delivery.service import DeliveryService
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def service():
    return DeliveryService.from_domain(current_domain)


@pytest.fixture()
def error():
    """Container for captured delivery errors."""
    return {"exc": None}


def _split(values):
    return [value.strip() for value in values.split(",")]


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('an order for customer "{customer_id}" to "{address}"'),
    target_fixture="order_id",
)
def an_order(service, customer_id, address):
    order = service.create_order(
        customer_id=customer_id,
        items=[{"name": "Salbutamol Inhaler", "quantity": 1, "unit_price": 7.5}],
        address=address,
    )
    return str(order.id)


@given(parsers.cfparse('partner "{partner_id}" is assigned to the order'))
def partner_assigned(service, order_id, partner_id):
    service.assign_partner(order_id, partner_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(service, order_id, status):
    assert service.get_order(order_id).status == status


@then(parsers.cfparse('the status history is "{statuses}"'))
def history_is(service, order_id, statuses):
    history = service.get_order(order_id).history
    assert [change.status for change in history] == _split(statuses)


@then("the order is paid")
def order_is_paid(service, order_id):
    assert service.get_order(order_id).payment_status == "paid"


@then(parsers.cfparse('the request fails with "{kind}"'))
def request_fails_with(error, kind):
    assert isinstance(error["exc"], DeliveryError)
    assert error["exc"].kind == kind
