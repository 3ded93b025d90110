"""Fake catalogue adapter — in-memory products and variants for tests and development."""

from shared.errors import NotFound
from storefront.catalogue.port import CatalogueReader, ProductListing, VariantListing


class FakeCatalogue(CatalogueReader):
    def __init__(self):
        self.products: dict[str, ProductListing] = {}
        self.variants: dict[str, VariantListing] = {}

    def add_product(self, product_id: str, name: str, price, pricing_tiers=(), is_active: bool = True):
        listing = ProductListing(
            id=product_id,
            name=name,
            price=price,
            pricing_tiers=tuple(pricing_tiers),
            is_active=is_active,
        )
        self.products[product_id] = listing
        return listing

    def add_variant(self, variant_id: str, product_id: str, size: str, price, stock: int = 10):
        listing = VariantListing(id=variant_id, product_id=product_id, size=size, price=price, stock=stock)
        self.variants[variant_id] = listing
        return listing

    async def get_product(self, product_id: str) -> ProductListing:
        try:
            return self.products[str(product_id)]
        except KeyError:
            raise NotFound("Product", str(product_id)) from None

    async def get_variant(self, variant_id: str) -> VariantListing:
        try:
            return self.variants[str(variant_id)]
        except KeyError:
            raise NotFound("Variant", str(variant_id)) from None

    async def list_variants(self, product_id: str) -> list[VariantListing]:
        return [v for v in self.variants.values() if v.product_id == str(product_id)]
