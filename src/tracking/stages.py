"""Stage value objects and the canonical delivery workflow.

Canonical workflow:
    Order Placed → Payment Pending → Processing → Shipped → Delivered →
    Confirmed Received

Exactly one stage is current (the first incomplete one); every stage before
it is completed and every stage after it is pending. Completion is
monotonic: a completed stage is never reopened.
"""

import json
from datetime import datetime
from enum import Enum

from protean.fields import Boolean, DateTime, String, Text

from shared.domain import farmgate


class StageName(Enum):
    ORDER_PLACED = "Order Placed"
    PAYMENT_PENDING = "Payment Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CONFIRMED_RECEIVED = "Confirmed Received"


CANONICAL_WORKFLOW = tuple(name.value for name in StageName)

# Legacy records tag their only entry with this pseudo-stage name.
DELIVERY_TAG = "delivery"


@farmgate.value_object
class Stage:
    """One named step of the fulfillment workflow."""

    name = String(required=True, max_length=255)
    completed = Boolean(default=False)
    timestamp = DateTime()

    def complete(self, at: datetime) -> "Stage":
        return Stage(name=self.name, completed=True, timestamp=at)


@farmgate.value_object
class DeliveryInfo:
    """Where the order goes, captured at checkout."""

    address = Text()
    instructions = Text()


def default_workflow(placed_at: datetime | None) -> tuple[Stage, ...]:
    """The six canonical stages with only "Order Placed" completed at ``placed_at``."""
    first, *rest = CANONICAL_WORKFLOW
    return (Stage(name=first, completed=True, timestamp=placed_at),) + tuple(Stage(name=name) for name in rest)


def stage_to_dict(stage: Stage) -> dict:
    return {
        "name": stage.name,
        "completed": stage.completed,
        "timestamp": stage.timestamp.isoformat() if stage.timestamp else "",
    }


def serialize_stages(stages, delivery: DeliveryInfo | None = None) -> str:
    """Encode stages for the ``stages`` column.

    Delivery details ride on the first entry so they survive later writes.
    """
    entries = [stage_to_dict(stage) for stage in stages]
    if delivery is not None and delivery.address and entries:
        entries[0]["address"] = delivery.address
        entries[0]["instructions"] = delivery.instructions or ""
    return json.dumps(entries)
