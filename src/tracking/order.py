"""Tracked order: the derived, disposable projection of one stored order.

A TrackedOrder is rebuilt from the authoritative OrderRecord on every sync
signal; it is never merged in place. Raw ``items`` and ``stages`` values are
decoded here and nowhere past this boundary.
"""

import dataclasses
import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import structlog
from protean.exceptions import ValidationError
from protean.fields import Integer, String

from shared.domain import farmgate
from storage.port import OrderRecord
from storefront.pricing.money import ZERO, price_or_zero
from tracking import parser
from tracking.stages import DeliveryInfo, Stage
from tracking.transitions import current_index, derive_status

logger = structlog.get_logger(__name__)


@farmgate.value_object
class OrderLine:
    product_id = String(required=True, max_length=255)
    variant_id = String(max_length=255)
    size = String(max_length=50)
    quantity = Integer(default=1, min_value=1)
    price = String(max_length=50)  # exact decimal text of the unit price
    name = String(max_length=255)

    @property
    def unit_price(self) -> Decimal | None:
        return Decimal(self.price) if self.price else None

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or ZERO) * self.quantity

    def with_details(self, name: str | None, size: str | None, unit_price: Decimal | None) -> "OrderLine":
        return OrderLine(
            product_id=self.product_id,
            variant_id=self.variant_id,
            size=size,
            quantity=self.quantity,
            price=str(unit_price) if unit_price is not None else None,
            name=name,
        )


@dataclass(frozen=True)
class TrackedOrder:
    id: str
    owner_id: str
    stages: tuple[Stage, ...]
    status: str
    created_at: datetime
    items: tuple[OrderLine, ...] = ()
    total: Decimal = ZERO
    delivery: DeliveryInfo | None = None
    stages_recovered: bool = False

    @classmethod
    def from_record(cls, record: OrderRecord) -> "TrackedOrder":
        parsed = parser.parse(record.stages, record.created_at)
        return cls(
            id=str(record.id),
            owner_id=str(record.owner_id),
            items=decode_items(record.items, record.id),
            stages=parsed.stages,
            status=record.status,
            total=price_or_zero(record.total),
            created_at=record.created_at,
            delivery=parsed.delivery,
            stages_recovered=parsed.recovered,
        )

    def replace(self, **changes) -> "TrackedOrder":
        return dataclasses.replace(self, **changes)

    @property
    def current_index(self) -> int | None:
        return current_index(self.stages)

    @property
    def current_stage(self) -> Stage | None:
        index = self.current_index
        return self.stages[index] if index is not None else None

    @property
    def is_terminal(self) -> bool:
        return self.current_index is None

    @property
    def derived_status(self) -> str:
        return derive_status(self.stages)

    @property
    def short_reference(self) -> str:
        return self.id[-6:].upper()


def decode_items(raw, order_id: str = "") -> tuple[OrderLine, ...]:
    """Decode the ``items`` column; an undecodable value yields no items."""
    if raw is None or raw == "":
        return ()
    try:
        entries = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        if isinstance(entries, dict):
            entries = [entries]
        return tuple(_line_from(entry) for entry in entries or ())
    except (ValueError, TypeError, AttributeError, KeyError) as exc:
        logger.warning("order_items_undecodable", order_id=order_id, error=str(exc))
        return ()
    except ValidationError as exc:
        logger.warning("order_items_undecodable", order_id=order_id, errors=exc.messages)
        return ()


def _line_from(entry: dict) -> OrderLine:
    unit_price = entry.get("unit_price", entry.get("price"))
    return OrderLine(
        product_id=str(entry["product_id"]),
        variant_id=str(entry["variant_id"]) if entry.get("variant_id") else None,
        size=entry.get("size") or None,
        quantity=int(entry.get("quantity", 1)),
        price=str(price_or_zero(unit_price)) if unit_price is not None else None,
        name=entry.get("name"),
    )
