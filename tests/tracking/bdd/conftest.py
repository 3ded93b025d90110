"""Shared BDD fixtures and step definitions for order tracking."""

import json
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when

from shared.errors import TransitionRejected
from storage.port import OrderRecord
from tracking.order import TrackedOrder
from tracking.stages import DeliveryInfo, Stage, default_workflow, serialize_stages
from tracking.transitions import advance_stages, derive_status

PLACED_AT = datetime(2024, 6, 1, 9, 30, tzinfo=UTC)


def _record(stages, status="Payment Pending"):
    return OrderRecord(
        id="ord-bdd-001",
        owner_id="buyer-bdd",
        items=json.dumps([{"product_id": "prod-honey", "quantity": 2, "unit_price": "900.00"}]),
        stages=stages,
        status=status,
        total=Decimal("1800.00"),
        created_at=PLACED_AT,
    )


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a newly placed order", target_fixture="order")
def newly_placed_order():
    stages = serialize_stages(default_workflow(PLACED_AT), DeliveryInfo(address="Plot 12, Limuru Road"))
    return TrackedOrder.from_record(_record(stages))


@given("an order waiting on receipt confirmation", target_fixture="order")
def order_awaiting_receipt():
    stages = serialize_stages(
        (
            Stage(name="Order Placed", completed=True, timestamp=PLACED_AT),
            Stage(name="Shipped", completed=True, timestamp=PLACED_AT),
            Stage(name="Delivered"),
        )
    )
    return TrackedOrder.from_record(_record(stages, status="Delivered"))


@given(
    parsers.cfparse('a legacy order stored with delivery address "{address}"'),
    target_fixture="record",
)
def legacy_order_record(address):
    stages = json.dumps([{"stage": "delivery", "address": address, "instructions": "", "status": "pending"}])
    return _record(stages, status="pending")


@given("an order with an unreadable stage history", target_fixture="record")
def unreadable_order_record():
    return _record("{not json")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the order is loaded", target_fixture="order")
def load_order(record):
    return TrackedOrder.from_record(record)


@when(parsers.cfparse("the order is advanced {times:d} times"), target_fixture="order")
def advance_order(order, times):
    for hour in range(1, times + 1):
        stages = advance_stages(order.stages, PLACED_AT + timedelta(hours=hour))
        order = order.replace(stages=stages, status=derive_status(stages))
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the current stage is "{name}"'))
def current_stage_is(order, name):
    assert order.current_stage is not None
    assert order.current_stage.name == name


@then(parsers.cfparse("the order shows {count:d} stages"))
def order_shows_n_stages(order, count):
    assert len(order.stages) == count


@then("the order is terminal")
def order_is_terminal(order):
    assert order.is_terminal
    assert order.current_stage is None


@then("every stage is completed")
def every_stage_completed(order):
    assert all(stage.completed for stage in order.stages)


@then("the stage timestamps never go backwards")
def timestamps_non_decreasing(order):
    stamps = [stage.timestamp for stage in order.stages if stage.completed]
    assert stamps == sorted(stamps)


@then(parsers.cfparse('the delivery address is "{address}"'))
def delivery_address_is(order, address):
    assert order.delivery is not None
    assert order.delivery.address == address


@then("the transition is rejected")
def transition_rejected(error):
    assert error["exc"] is not None, "Expected a rejected transition but none was raised"
    assert isinstance(error["exc"], ValidationError)
    assert isinstance(error["exc"], TransitionRejected)
