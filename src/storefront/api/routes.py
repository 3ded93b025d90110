"""FastAPI routes for the Storefront: cart quotes and checkout."""

from fastapi import APIRouter, Depends

from shared.auth import AuthSession, session_from_header
from shared.config import get_currency
from storefront.api.schemas import (
    CartLineQuote,
    OrderPlacedResponse,
    PlaceOrderRequest,
    QuoteRequest,
    QuoteResponse,
)
from storefront.cart.cart import Cart
from storefront.cart.management import build_cart
from storefront.checkout import place_order
from storefront.pricing.money import quantize_money
from tracking.stages import DeliveryInfo

router = APIRouter(tags=["storefront"])


async def _cart_for(body: QuoteRequest, owner_id: str | None = None) -> Cart:
    cart = await build_cart([line.model_dump() for line in body.lines], owner_id=owner_id)
    cart.apply_discount_code(body.discount_code)
    return cart


def _quote(cart: Cart) -> QuoteResponse:
    return QuoteResponse(
        lines=[
            CartLineQuote(
                product_id=str(line.product_id),
                variant_id=line.variant_id,
                name=line.name or "",
                size=line.size,
                quantity=line.quantity,
                unit_base_price=quantize_money(line.unit_base_price),
                unit_price=quantize_money(line.unit_price),
                line_total=quantize_money(line.total),
                tier_applied=line.tier_applied,
            )
            for line in cart.lines
        ],
        total_items=cart.total_items,
        subtotal=quantize_money(cart.subtotal),
        discount_code=cart.discount_code,
        discount=quantize_money(cart.discount_total),
        total=quantize_money(cart.total),
        currency=get_currency(),
    )


@router.post("/cart/quote", response_model=QuoteResponse)
async def quote_cart(body: QuoteRequest) -> QuoteResponse:
    """Price a cart with quantity tiers, size variants and any discount code."""
    return _quote(await _cart_for(body))


@router.post("/orders", status_code=201, response_model=OrderPlacedResponse)
async def create_order(
    body: PlaceOrderRequest,
    session: AuthSession = Depends(session_from_header),
) -> OrderPlacedResponse:
    cart = await _cart_for(body, owner_id=session.user_id)
    delivery = DeliveryInfo(address=body.address.strip(), instructions=body.instructions)
    record = await place_order(cart, session, delivery)
    return OrderPlacedResponse(
        order_id=record.id,
        status=record.status,
        total=record.total,
        currency=get_currency(),
    )
