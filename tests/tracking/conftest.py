import json
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from shared.auth import AuthSession
from storage.port import OrderRecord
from tracking.stages import DeliveryInfo, Stage, default_workflow, serialize_stages

PLACED_AT = datetime(2024, 6, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def buyer():
    return AuthSession(user_id="buyer-001")


@pytest.fixture
def stranger():
    return AuthSession(user_id="buyer-999")


@pytest.fixture
def seed_order(store):
    """Store an order directly, without publishing a change signal."""

    def _seed(
        order_id="ord-1001",
        owner_id="buyer-001",
        stages=None,
        items=None,
        status="Payment Pending",
        created_at=PLACED_AT,
    ):
        if stages is None:
            stages = serialize_stages(default_workflow(created_at), DeliveryInfo(address="Plot 12, Limuru Road"))
        if items is None:
            items = json.dumps([{"product_id": "prod-honey", "variant_id": "var-honey-1kg", "quantity": 2}])
        return store.seed(
            OrderRecord(
                id=order_id,
                owner_id=owner_id,
                items=items,
                stages=stages,
                status=status,
                total=Decimal("1800.00"),
                created_at=created_at,
            )
        )

    return _seed


@pytest.fixture
def delivered_stages():
    """A short workflow waiting only on the buyer's receipt confirmation."""
    return serialize_stages(
        (
            Stage(name="Order Placed", completed=True, timestamp=PLACED_AT),
            Stage(name="Shipped", completed=True, timestamp=PLACED_AT),
            Stage(name="Delivered"),
        )
    )
