"""Tiered unit-price resolution.

A product (or its variant) carries a base price and an optional set of
quantity tiers. The effective unit price for a line is the price of the tier
with the largest ``min_quantity`` not exceeding the line quantity, or the
base price when no tier qualifies.

Everything here is a pure function of its inputs; recomputing a cart never
mutates stored data.
"""

import json
from collections.abc import Iterable
from decimal import Decimal
from typing import Any, Protocol

from protean.fields import Integer, String

from shared.domain import farmgate
from storefront.pricing.money import ZERO, price_or_zero


@farmgate.value_object
class PricingTier:
    """A quantity threshold and the unit price that applies from it upward.

    ``price`` holds the exact decimal text of the unit price.
    """

    min_quantity = Integer(required=True, min_value=1)
    price = String(required=True, max_length=50)

    @classmethod
    def build(cls, min_quantity, price) -> "PricingTier":
        return cls(min_quantity=min_quantity, price=str(price_or_zero(price)))

    @property
    def unit_price(self) -> Decimal:
        return Decimal(self.price)

    def as_json(self) -> dict:
        return {"min_quantity": self.min_quantity, "price": self.price}


class PricedLine(Protocol):
    unit_base_price: Any
    tiers: Iterable[Any]
    quantity: int


def as_tier(raw) -> PricingTier:
    """Accept a PricingTier or a mapping with ``min_quantity`` and ``price``/``unit_price``."""
    if isinstance(raw, PricingTier):
        return raw
    return PricingTier.build(raw.get("min_quantity"), raw.get("price", raw.get("unit_price")))


def encode_tiers(tiers: Iterable[Any]) -> str:
    return json.dumps([as_tier(tier).as_json() for tier in tiers or ()])


def decode_tiers(raw: str | None) -> tuple[PricingTier, ...]:
    if not raw:
        return ()
    return tuple(as_tier(entry) for entry in json.loads(raw))


def select_tier(tiers: Iterable[Any], quantity: int) -> PricingTier | None:
    """Return the most specific tier applicable to ``quantity``.

    Ties on ``min_quantity`` keep the first tier encountered.
    """
    winner = None
    for raw in tiers or ():
        tier = as_tier(raw)
        if tier.min_quantity > quantity:
            continue
        if winner is None or tier.min_quantity > winner.min_quantity:
            winner = tier
    return winner


def resolve_unit_price(base_price, tiers: Iterable[Any] | None, quantity: int) -> Decimal:
    """Effective unit price for ``quantity`` units.

    Prices may be numbers or display text; unreadable prices count as zero.
    """
    if quantity < 1:
        raise ValueError(f"Quantity must be at least 1, got {quantity}")

    tier = select_tier(tiers or (), quantity)
    if tier is not None:
        return tier.unit_price
    return price_or_zero(base_price)


def line_total(line: PricedLine) -> Decimal:
    return resolve_unit_price(line.unit_base_price, line.tiers, line.quantity) * line.quantity


def cart_subtotal(lines: Iterable[PricedLine]) -> Decimal:
    return sum((line_total(line) for line in lines), ZERO)
