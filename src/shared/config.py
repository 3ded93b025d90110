"""Environment-driven settings shared across contexts.

Adapter selection lives next to each adapter factory (``STORAGE_ADAPTER``,
``CATALOGUE_ADAPTER``); the values here are the ones more than one module
needs.
"""

import os
from decimal import Decimal

DEFAULT_CURRENCY = "KES"

# Percentage discounts keyed by code, as a fraction of the cart subtotal.
DISCOUNT_CODES = {
    "SAVE10": Decimal("0.10"),
}


def get_environment() -> str:
    """Return the lower-cased deployment environment name."""
    return (os.getenv("ENVIRONMENT") or os.getenv("FARMGATE_ENV") or "development").lower()


def get_currency() -> str:
    return os.getenv("FARMGATE_CURRENCY", DEFAULT_CURRENCY)
