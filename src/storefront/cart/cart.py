"""Shopping cart aggregate — lines priced by quantity tier and size variant.

The cart is owned by a single buyer session. Lines are keyed by product and
variant, so two sizes of the same product are tracked separately. Prices are
never cached on the cart: every total is recomputed from the lines.
"""

from datetime import UTC, datetime
from decimal import Decimal

import structlog
from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from shared.domain import farmgate
from storefront.cart.discounts import discount_for, is_valid_code, normalize_code
from storefront.pricing.money import price_or_zero
from storefront.pricing.resolver import PricingTier, cart_subtotal, decode_tiers, encode_tiers, resolve_unit_price

logger = structlog.get_logger(__name__)


@farmgate.entity(part_of="Cart")
class CartLine:
    """One product/variant in the cart with its base price and tiers."""

    product_id = Identifier(required=True)
    variant_id = Identifier()
    name = String(max_length=255)
    size = String(max_length=50)
    base_price = String(max_length=50, default="0")  # exact decimal text
    pricing_tiers = Text()  # JSON list of {"min_quantity", "price"}
    quantity = Integer(required=True, min_value=1)

    @property
    def key(self) -> tuple[str, str | None]:
        return (str(self.product_id), str(self.variant_id) if self.variant_id else None)

    @property
    def unit_base_price(self) -> Decimal:
        return Decimal(self.base_price or "0")

    @property
    def tiers(self) -> tuple[PricingTier, ...]:
        return decode_tiers(self.pricing_tiers)

    @property
    def unit_price(self) -> Decimal:
        return resolve_unit_price(self.unit_base_price, self.tiers, self.quantity)

    @property
    def total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def tier_applied(self) -> bool:
        return self.unit_price != self.unit_base_price


@farmgate.aggregate
class Cart:
    owner_id = Identifier()  # None for anonymous quotes
    lines = HasMany(CartLine)
    discount_code = String(max_length=50)
    updated_at = DateTime()

    @invariant.post
    def discount_code_must_be_known(self):
        if self.discount_code and not is_valid_code(self.discount_code):
            raise ValidationError({"discount_code": [f"Unknown discount code {self.discount_code!r}"]})

    @invariant.post
    def one_line_per_product_variant(self):
        keys = [line.key for line in self.lines]
        if len(keys) != len(set(keys)):
            raise ValidationError({"lines": ["A product variant can only appear once in the cart"]})

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def _find(self, product_id, variant_id=None) -> CartLine | None:
        key = (str(product_id), str(variant_id) if variant_id else None)
        return next((line for line in self.lines if line.key == key), None)

    def add_item(
        self,
        product_id,
        quantity,
        unit_base_price,
        variant_id=None,
        name="",
        size=None,
        tiers=(),
    ) -> CartLine:
        """Add a line, or increase the quantity of the matching line."""
        existing = self._find(product_id, variant_id)
        if existing:
            existing.quantity = existing.quantity + quantity
            line = existing
        else:
            line = CartLine(
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                name=name or None,
                size=size,
                base_price=str(price_or_zero(unit_base_price)),
                pricing_tiers=encode_tiers(tiers),
                quantity=quantity,
            )
            self.add_lines(line)

        self.updated_at = datetime.now(UTC)
        logger.debug("cart_item_added", product_id=line.product_id, variant_id=line.variant_id, quantity=line.quantity)
        return line

    def update_quantity(self, product_id, quantity, variant_id=None) -> CartLine | None:
        """Set a line's quantity; values below one are raised to one."""
        line = self._find(product_id, variant_id)
        if line is None:
            return None
        line.quantity = max(1, int(quantity))
        self.updated_at = datetime.now(UTC)
        return line

    def remove_item(self, product_id, variant_id=None) -> bool:
        line = self._find(product_id, variant_id)
        if line is None:
            return False
        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)
        return True

    def clear(self) -> None:
        for line in list(self.lines):
            self.remove_lines(line)
        self.discount_code = None
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Discounts
    # -------------------------------------------------------------------
    def apply_discount_code(self, code: str | None) -> bool:
        """Apply ``code`` if it is known; an unknown code clears any discount."""
        if is_valid_code(code):
            self.discount_code = normalize_code(code)
            return True
        self.discount_code = None
        return False

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def subtotal(self) -> Decimal:
        return cart_subtotal(self.lines)

    @property
    def discount_total(self) -> Decimal:
        return discount_for(self.discount_code, self.subtotal)

    @property
    def total(self) -> Decimal:
        return self.subtotal - self.discount_total
