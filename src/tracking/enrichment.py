"""Order item enrichment. Adds catalogue names, sizes and prices for display.

Lookups that fail leave the item readable ("Unknown Product", price zero)
rather than failing the whole tracking view.
"""

import asyncio

import structlog

from shared.errors import NotFound
from storefront.catalogue import get_catalogue
from storefront.catalogue.port import CatalogueReader
from storefront.pricing.money import ZERO, price_or_zero
from tracking.order import OrderLine, TrackedOrder

logger = structlog.get_logger(__name__)

UNKNOWN_PRODUCT = "Unknown Product"


async def enrich_line(line: OrderLine, catalogue: CatalogueReader) -> OrderLine:
    name = UNKNOWN_PRODUCT
    price = ZERO
    size = line.size

    try:
        product = await catalogue.get_product(line.product_id)
        name = product.name or UNKNOWN_PRODUCT
        price = price_or_zero(product.price)

        if line.variant_id:
            variant = await catalogue.get_variant(line.variant_id)
            size = variant.size or size
            price = price_or_zero(variant.price)
    except NotFound as exc:
        logger.warning("order_item_enrichment_failed", product_id=line.product_id, error=str(exc))

    # A price captured at checkout wins over today's catalogue price.
    unit_price = line.unit_price if line.unit_price is not None else price
    return line.with_details(name=name, size=size, unit_price=unit_price)


async def enrich_order(order: TrackedOrder, catalogue: CatalogueReader | None = None) -> TrackedOrder:
    catalogue = catalogue or get_catalogue()
    items = await asyncio.gather(*(enrich_line(line, catalogue) for line in order.items))
    return order.replace(items=tuple(items))
