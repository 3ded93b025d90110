"""Money parsing. Turns stored price values into exact decimals.

Catalogue prices arrive either as numbers or as display text such as
``"KES 1,200.50"``. Every amount is handled as ``Decimal``; binary floats
are converted through their string form so no rounding drift is introduced.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import structlog

from shared.errors import InvalidPriceFormat

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

_NOISE = re.compile(r"[^\d.]")
_LEADING_NUMBER = re.compile(r"\d*(?:\.\d*)?")


def parse_money(raw) -> Decimal:
    """Return the non-negative magnitude contained in ``raw``.

    Text is stripped of everything but digits and decimal points, then the
    leading ``digits[.digits]`` run is read, so ``"1.200.50"`` reads as
    ``1.200``. Raises InvalidPriceFormat if no digits remain.
    """
    if raw is None or isinstance(raw, bool):
        raise InvalidPriceFormat(raw)

    if isinstance(raw, Decimal):
        if not raw.is_finite() or raw < 0:
            raise InvalidPriceFormat(raw)
        return raw

    if isinstance(raw, int):
        if raw < 0:
            raise InvalidPriceFormat(raw)
        return Decimal(raw)

    if isinstance(raw, float):
        if not math.isfinite(raw) or raw < 0:
            raise InvalidPriceFormat(raw)
        return Decimal(str(raw))

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="ignore")

    if not isinstance(raw, str):
        raise InvalidPriceFormat(raw)

    cleaned = _NOISE.sub("", raw)
    number = _LEADING_NUMBER.match(cleaned).group(0)
    if not any(ch.isdigit() for ch in number):
        raise InvalidPriceFormat(raw)

    if number.startswith("."):
        number = "0" + number
    try:
        return Decimal(number.rstrip("."))
    except InvalidOperation as exc:  # pragma: no cover - regex guarantees a valid literal
        raise InvalidPriceFormat(raw) from exc


def price_or_zero(raw) -> Decimal:
    """Parse ``raw``, treating an unreadable price as zero so the cart stays usable."""
    try:
        return parse_money(raw)
    except InvalidPriceFormat:
        logger.warning("price_unreadable", raw_value=repr(raw))
        return ZERO


def quantize_money(amount: Decimal) -> Decimal:
    """Round to minor units for storage and display."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
