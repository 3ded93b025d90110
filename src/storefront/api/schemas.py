"""Pydantic request/response schemas for the Storefront API.

These are external contracts, kept separate from the cart and order models.
Amounts are serialized as decimal strings.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartLineRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1, default=1)


class CartLineQuote(BaseModel):
    product_id: str
    variant_id: str | None = None
    name: str
    size: str | None = None
    quantity: int
    unit_base_price: Decimal
    unit_price: Decimal
    line_total: Decimal
    tier_applied: bool


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class QuoteRequest(BaseModel):
    lines: list[CartLineRequest] = Field(default_factory=list)
    discount_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "lines": [{"product_id": "prod-honey", "variant_id": "var-honey-1kg", "quantity": 5}],
                    "discount_code": "SAVE10",
                }
            ]
        }
    }


class PlaceOrderRequest(QuoteRequest):
    address: str = ""
    instructions: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class QuoteResponse(BaseModel):
    lines: list[CartLineQuote]
    total_items: int
    subtotal: Decimal
    discount_code: str | None = None
    discount: Decimal
    total: Decimal
    currency: str


class OrderPlacedResponse(BaseModel):
    order_id: str
    status: str
    total: Decimal
    currency: str
