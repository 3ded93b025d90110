"""Adding catalogue products to a cart.

Looks up the product and the chosen size variant, then adds a line whose
base price is the product price, or the variant price when a variant is
chosen, and whose tiers come from the product. A variant must belong to the
product it is added with.
"""

import structlog

from shared.errors import NotFound
from storefront.cart.cart import Cart, CartLine
from storefront.catalogue import get_catalogue
from storefront.catalogue.port import CatalogueReader
from storefront.pricing.money import price_or_zero

logger = structlog.get_logger(__name__)


async def add_from_catalogue(
    cart: Cart,
    product_id: str,
    quantity: int,
    variant_id: str | None = None,
    catalogue: CatalogueReader | None = None,
) -> CartLine:
    """Add ``quantity`` units of a catalogue product (and optional variant) to ``cart``.

    Raises NotFound when the product or variant does not exist, or when the
    variant belongs to another product.
    """
    catalogue = catalogue or get_catalogue()
    product = await catalogue.get_product(product_id)

    base_price = price_or_zero(product.price)
    name = product.name
    size = None

    if variant_id:
        variant = await catalogue.get_variant(variant_id)
        if str(variant.product_id) != str(product.id):
            logger.warning("cart_variant_mismatch", product_id=product.id, variant_id=variant_id)
            raise NotFound("Variant", variant_id)
        size = variant.size
        name = f"{product.name} - {variant.size}"
        base_price = price_or_zero(variant.price)

    line = cart.add_item(
        product_id=product.id,
        variant_id=variant_id,
        quantity=quantity,
        unit_base_price=base_price,
        name=name,
        size=size,
        tiers=product.pricing_tiers,
    )
    logger.info("cart_line_priced", product_id=product.id, variant_id=variant_id, unit_price=str(line.unit_price))
    return line


async def build_cart(lines: list[dict], owner_id: str | None = None, catalogue: CatalogueReader | None = None) -> Cart:
    """Build a fresh cart from ``[{product_id, variant_id?, quantity}]`` requests."""
    cart = Cart(owner_id=owner_id)
    for requested in lines:
        await add_from_catalogue(
            cart,
            product_id=requested["product_id"],
            variant_id=requested.get("variant_id"),
            quantity=requested["quantity"],
            catalogue=catalogue,
        )
    return cart
