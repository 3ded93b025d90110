"""Tests for adding catalogue details to tracked order items."""

from decimal import Decimal

import pytest

from tracking.enrichment import UNKNOWN_PRODUCT, enrich_line, enrich_order
from tracking.order import OrderLine, TrackedOrder


@pytest.fixture
def stocked(catalogue):
    catalogue.add_product("prod-honey", "Raw Honey", "KES 1,000")
    catalogue.add_variant("var-honey-500g", "prod-honey", "500g", 550)
    catalogue.add_product("prod-greens", "Sukuma Wiki", "see stall")
    return catalogue


class TestEnrichLine:
    @pytest.mark.asyncio
    async def test_product_name_and_price(self, stocked):
        line = await enrich_line(OrderLine(product_id="prod-honey", quantity=2), stocked)
        assert line.name == "Raw Honey"
        assert line.unit_price == Decimal("1000")
        assert line.line_total == Decimal("2000")

    @pytest.mark.asyncio
    async def test_variant_overrides_size_and_price(self, stocked):
        line = await enrich_line(OrderLine(product_id="prod-honey", variant_id="var-honey-500g"), stocked)
        assert line.size == "500g"
        assert line.unit_price == Decimal("550")

    @pytest.mark.asyncio
    async def test_checkout_price_wins(self, stocked):
        line = OrderLine(product_id="prod-honey", price="900.00", quantity=5)
        enriched = await enrich_line(line, stocked)
        assert enriched.unit_price == Decimal("900.00")
        assert enriched.name == "Raw Honey"

    @pytest.mark.asyncio
    async def test_missing_product(self, stocked):
        line = await enrich_line(OrderLine(product_id="prod-gone", size="2kg"), stocked)
        assert line.name == UNKNOWN_PRODUCT
        assert line.unit_price == Decimal("0")
        assert line.size == "2kg"

    @pytest.mark.asyncio
    async def test_missing_variant_keeps_product_details(self, stocked):
        line = await enrich_line(OrderLine(product_id="prod-honey", variant_id="var-gone"), stocked)
        assert line.name == "Raw Honey"
        assert line.unit_price == Decimal("1000")

    @pytest.mark.asyncio
    async def test_unreadable_price_is_zero(self, stocked):
        line = await enrich_line(OrderLine(product_id="prod-greens"), stocked)
        assert line.name == "Sukuma Wiki"
        assert line.unit_price == Decimal("0")


class TestEnrichOrder:
    @pytest.mark.asyncio
    async def test_keeps_item_order(self, stocked, seed_order, store):
        seed_order(
            items='[{"product_id": "prod-greens"}, {"product_id": "prod-gone"}, {"product_id": "prod-honey"}]'
        )
        order = TrackedOrder.from_record(await store.fetch("ord-1001"))

        enriched = await enrich_order(order)

        assert [line.name for line in enriched.items] == ["Sukuma Wiki", UNKNOWN_PRODUCT, "Raw Honey"]
        assert enriched.stages == order.stages
        assert order.items[0].name is None
