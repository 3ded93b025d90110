"""Order stage machine, the only path that moves an order forward.

Operations:
    advance          complete the current stage; no-op once terminal
    confirm_receipt  buyer confirms a trailing "Delivered" stage

Both check ownership before anything else, write through the store with an
ownership-conditioned update, and return a new TrackedOrder. The order
passed in is never mutated, so a failed write leaves the caller's state as
it was.
"""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from shared.auth import AuthSession
from shared.errors import AccessDenied, StoreError, TransitionFailed
from storage import get_store
from storage.port import OrderStore
from tracking.order import TrackedOrder
from tracking.stages import StageName, serialize_stages
from tracking.transitions import advance_stages, assert_monotonic, confirm_receipt_stages, derive_status

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OrderStageMachine:
    def __init__(self, store: OrderStore | None = None, clock: Callable[[], datetime] = _utcnow):
        self._store = store
        self._clock = clock

    @property
    def store(self) -> OrderStore:
        return self._store or get_store()

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------
    async def advance(self, order: TrackedOrder, session: AuthSession) -> TrackedOrder:
        """Complete the current stage and move the status to the next one."""
        self._assert_owner(order, session)

        if order.is_terminal:
            logger.info("advance_skipped_terminal", order_id=order.id)
            return order

        stages = advance_stages(order.stages, self._clock())
        return await self._commit(order, session, stages, derive_status(stages), "advance")

    async def confirm_receipt(self, order: TrackedOrder, session: AuthSession) -> TrackedOrder:
        """Mark a delivered order as received by the buyer."""
        self._assert_owner(order, session)

        stages = confirm_receipt_stages(order.stages, self._clock(), order_id=order.id)
        return await self._commit(order, session, stages, StageName.CONFIRMED_RECEIVED.value, "confirm receipt of")

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_owner(self, order: TrackedOrder, session: AuthSession) -> None:
        if not session.can_mutate:
            raise AccessDenied(order.id, session.user_id, "Sign in to update this order")
        if not session.owns(order.owner_id):
            logger.warning("transition_access_denied", order_id=order.id, user_id=session.user_id)
            raise AccessDenied(order.id, session.user_id)

    async def _commit(self, order, session, stages, status, action) -> TrackedOrder:
        assert_monotonic(order.stages, stages, order.id)

        try:
            await self.store.update_for_owner(
                order.id,
                session.user_id,
                stages=serialize_stages(stages, order.delivery),
                status=status,
            )
        except StoreError as exc:
            logger.error("stage_transition_failed", order_id=order.id, action=action, error=str(exc))
            raise TransitionFailed(order.id, action, str(exc)) from exc

        logger.info("stage_transition_committed", order_id=order.id, action=action, status=status)
        return order.replace(stages=stages, status=status)
