"""Checkout: turns a buyer's cart into a stored, trackable order.

The order is written with the purchase-time unit price of every line, the
canonical workflow (with "Order Placed" already completed) and the delivery
details carried on the first stage. The cart is cleared only after the
store accepted the insert.
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from shared.auth import AuthSession
from shared.errors import CheckoutRejected
from storage import get_store
from storage.port import OrderRecord, OrderStore
from storefront.cart.cart import Cart
from storefront.pricing.money import quantize_money
from tracking.stages import DeliveryInfo, default_workflow, serialize_stages
from tracking.transitions import derive_status

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _validate(cart: Cart, session: AuthSession, delivery: DeliveryInfo | None) -> None:
    errors: dict[str, list[str]] = {}
    if not session.can_mutate:
        errors.setdefault("session", []).append("Sign in to place an order")
    if cart.is_empty:
        errors.setdefault("cart", []).append("Cart is empty")
    if delivery is None or not (delivery.address or "").strip():
        errors.setdefault("address", []).append("Delivery address is required")
    if errors:
        raise CheckoutRejected(errors)


def serialize_items(cart: Cart) -> str:
    return json.dumps(
        [
            {
                "product_id": line.product_id,
                "variant_id": line.variant_id,
                "size": line.size,
                "quantity": line.quantity,
                "unit_price": str(quantize_money(line.unit_price)),
                "name": line.name,
            }
            for line in cart.lines
        ]
    )


async def place_order(
    cart: Cart,
    session: AuthSession,
    delivery: DeliveryInfo | None,
    store: OrderStore | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> OrderRecord:
    """Store ``cart`` as a new order for ``session``'s user and clear the cart.

    Raises CheckoutRejected without writing anything when the session cannot
    mutate, the cart is empty or no delivery address was given.
    """
    _validate(cart, session, delivery)
    store = store or get_store()

    stages = default_workflow(clock())
    total = quantize_money(cart.total)
    record = await store.insert(
        owner_id=session.user_id,
        items=serialize_items(cart),
        stages=serialize_stages(stages, delivery),
        status=derive_status(stages),
        total=total,
    )

    logger.info(
        "order_placed",
        order_id=record.id,
        owner_id=record.owner_id,
        lines=len(cart.lines),
        total=str(total),
        discount_code=cart.discount_code,
    )
    cart.clear()
    return record
