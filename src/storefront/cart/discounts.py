"""Discount codes applied to a cart subtotal."""

from decimal import Decimal

from shared.config import DISCOUNT_CODES
from storefront.pricing.money import ZERO


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def is_valid_code(code: str | None) -> bool:
    return normalize_code(code) in DISCOUNT_CODES


def discount_for(code: str | None, subtotal: Decimal) -> Decimal:
    """Amount taken off ``subtotal`` by ``code``; unknown codes give no discount."""
    rate = DISCOUNT_CODES.get(normalize_code(code))
    if rate is None:
        return ZERO
    return subtotal * rate
