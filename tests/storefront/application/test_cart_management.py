"""Tests for pricing cart lines from the catalogue."""

from decimal import Decimal

import pytest

from shared.errors import NotFound
from storefront.cart.cart import Cart
from storefront.cart.management import add_from_catalogue, build_cart


class TestAddFromCatalogue:
    @pytest.mark.asyncio
    async def test_product_without_variant(self, honey):
        cart = Cart(owner_id="buyer-001")
        line = await add_from_catalogue(cart, "prod-honey", 1)
        assert line.name == "Raw Honey"
        assert line.size is None
        assert line.unit_base_price == Decimal("1000")

    @pytest.mark.asyncio
    async def test_variant_price_overrides_product_price(self, honey):
        cart = Cart()
        line = await add_from_catalogue(cart, "prod-honey", 2, variant_id="var-honey-500g")
        assert line.name == "Raw Honey - 500g"
        assert line.size == "500g"
        assert line.unit_price == Decimal("550")

    @pytest.mark.asyncio
    async def test_variant_line_uses_product_tiers(self, honey):
        cart = Cart()
        line = await add_from_catalogue(cart, "prod-honey", 10, variant_id="var-honey-1kg")
        assert line.unit_price == Decimal("800")
        assert line.tier_applied is True

    @pytest.mark.asyncio
    async def test_float_catalogue_price(self, eggs):
        cart = Cart()
        line = await add_from_catalogue(cart, "prod-eggs", 3)
        assert line.total == Decimal("1350.0")

    @pytest.mark.asyncio
    async def test_unknown_product(self, honey):
        with pytest.raises(NotFound):
            await add_from_catalogue(Cart(), "prod-missing", 1)

    @pytest.mark.asyncio
    async def test_unknown_variant(self, honey):
        with pytest.raises(NotFound):
            await add_from_catalogue(Cart(), "prod-honey", 1, variant_id="var-missing")

    @pytest.mark.asyncio
    async def test_variant_of_another_product_is_rejected(self, honey, eggs):
        cart = Cart()
        with pytest.raises(NotFound) as exc:
            await add_from_catalogue(cart, "prod-eggs", 1, variant_id="var-honey-1kg")

        assert exc.value.kind == "Variant"
        assert exc.value.identifier == "var-honey-1kg"
        assert cart.is_empty


class TestBuildCart:
    @pytest.mark.asyncio
    async def test_builds_priced_cart(self, honey, eggs):
        cart = await build_cart(
            [
                {"product_id": "prod-honey", "variant_id": "var-honey-1kg", "quantity": 5},
                {"product_id": "prod-eggs", "quantity": 1},
            ],
            owner_id="buyer-001",
        )
        assert cart.owner_id == "buyer-001"
        assert len(cart.lines) == 2
        assert cart.subtotal == Decimal("4950")

    @pytest.mark.asyncio
    async def test_repeated_requests_merge(self, honey):
        cart = await build_cart(
            [
                {"product_id": "prod-honey", "quantity": 3},
                {"product_id": "prod-honey", "quantity": 2},
            ]
        )
        assert len(cart.lines) == 1
        assert cart.lines[0].unit_price == Decimal("900")

    @pytest.mark.asyncio
    async def test_empty_request_gives_empty_cart(self):
        cart = await build_cart([])
        assert cart.is_empty
