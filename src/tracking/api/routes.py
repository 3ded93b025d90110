"""FastAPI routes for order tracking: reads and stage transitions.

Every request works on a fresh read of the stored order, so the response
always reflects the authoritative record after the operation.
"""

from fastapi import APIRouter, Depends

from shared.auth import AuthSession, session_from_header
from tracking.api.schemas import OrderListResponse, OrderResponse
from tracking.sync import OrderTracker, OwnerOrdersTracker

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=OrderListResponse)
async def list_orders(session: AuthSession = Depends(session_from_header)) -> OrderListResponse:
    orders = await OwnerOrdersTracker(session).refresh()
    return OrderListResponse(orders=[OrderResponse.from_order(order) for order in orders])


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, session: AuthSession = Depends(session_from_header)) -> OrderResponse:
    order = await OrderTracker(order_id, session, enrich=True).refresh()
    return OrderResponse.from_order(order)


@router.put("/{order_id}/advance", response_model=OrderResponse)
async def advance_order(order_id: str, session: AuthSession = Depends(session_from_header)) -> OrderResponse:
    """Complete the current stage. Advancing a finished order changes nothing."""
    order = await OrderTracker(order_id, session, enrich=True).advance()
    return OrderResponse.from_order(order)


@router.put("/{order_id}/confirm-receipt", response_model=OrderResponse)
async def confirm_order_receipt(order_id: str, session: AuthSession = Depends(session_from_header)) -> OrderResponse:
    order = await OrderTracker(order_id, session, enrich=True).confirm_receipt()
    return OrderResponse.from_order(order)
