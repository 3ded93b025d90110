"""Pydantic response schemas for the order tracking API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from tracking.order import OrderLine, TrackedOrder
from tracking.stages import DeliveryInfo


class StageSchema(BaseModel):
    name: str
    completed: bool
    timestamp: datetime | None = None


class OrderLineSchema(BaseModel):
    product_id: str
    variant_id: str | None = None
    name: str | None = None
    size: str | None = None
    quantity: int
    unit_price: Decimal | None = None
    line_total: Decimal

    @classmethod
    def from_line(cls, line: OrderLine) -> "OrderLineSchema":
        return cls(
            product_id=line.product_id,
            variant_id=line.variant_id,
            name=line.name,
            size=line.size,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.line_total,
        )


class DeliverySchema(BaseModel):
    address: str
    instructions: str | None = None

    @classmethod
    def from_delivery(cls, delivery: DeliveryInfo) -> "DeliverySchema":
        return cls(address=delivery.address or "", instructions=delivery.instructions)


class OrderResponse(BaseModel):
    id: str
    reference: str
    status: str
    current_stage: str | None = None
    is_terminal: bool
    total: Decimal
    created_at: datetime
    delivery: DeliverySchema | None = None
    stages_recovered: bool = False
    stages: list[StageSchema]
    items: list[OrderLineSchema]

    @classmethod
    def from_order(cls, order: TrackedOrder) -> "OrderResponse":
        current = order.current_stage
        return cls(
            id=order.id,
            reference=order.short_reference,
            status=order.status,
            current_stage=current.name if current else None,
            is_terminal=order.is_terminal,
            total=order.total,
            created_at=order.created_at,
            delivery=DeliverySchema.from_delivery(order.delivery) if order.delivery else None,
            stages_recovered=order.stages_recovered,
            stages=[StageSchema(name=s.name, completed=s.completed, timestamp=s.timestamp) for s in order.stages],
            items=[OrderLineSchema.from_line(line) for line in order.items],
        )


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
