"""Catalogue port — read-only lookup of products and their size variants.

Prices and tiers are returned exactly as the catalogue stores them (numbers
or display text); the pricing module normalizes them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ProductListing:
    id: str
    name: str
    price: Any
    pricing_tiers: tuple = field(default_factory=tuple)
    is_active: bool = True


@dataclass(frozen=True)
class VariantListing:
    id: str
    product_id: str
    size: str
    price: Any
    stock: int = 0


class CatalogueReader(ABC):
    """Abstract interface for catalogue adapters."""

    @abstractmethod
    async def get_product(self, product_id: str) -> ProductListing:
        """Return the product. Raises NotFound."""
        ...

    @abstractmethod
    async def get_variant(self, variant_id: str) -> VariantListing:
        """Return the size variant. Raises NotFound."""
        ...

    @abstractmethod
    async def list_variants(self, product_id: str) -> list[VariantListing]:
        """Return every size variant of a product."""
        ...
