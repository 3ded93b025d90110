"""Sync coordinators that keep a displayed order view converged with the store.

Every change signal from the feed, and every manual refresh, throws the
local view away and rebuilds it from a fresh read of the authoritative
record. Local deltas are never merged.

Usage:
    async with OrderTracker(order_id, session) as tracker:
        tracker.on_update(render)
        await tracker.advance()

Leaving the ``async with`` block (or calling ``close()``) removes the feed
subscription and stops the consumer task.
"""

import asyncio
import contextlib
import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable

import structlog

from shared.auth import AuthSession
from shared.errors import AccessDenied, NotFound, StoreError, TransitionRejected
from storage import get_change_feed, get_store
from storage.port import ORDERS_TABLE, ChangeFeed, OrderStore, Subscription
from storefront.catalogue.port import CatalogueReader
from tracking.enrichment import enrich_order
from tracking.machine import OrderStageMachine
from tracking.order import TrackedOrder

logger = structlog.get_logger(__name__)

# Expected while the order or the store is unavailable; anything else is a bug
# and is logged with its traceback. Either way the last good view is kept.
_EXPECTED = (StoreError, NotFound, AccessDenied)


class LiveView(ABC):
    """One change-feed subscription and one consumer task per view scope."""

    column: str = ""

    def __init__(self, session: AuthSession, store: OrderStore | None = None, feed: ChangeFeed | None = None):
        self.session = session
        self._store = store
        self._feed = feed
        self.view = None
        self.last_error: Exception | None = None
        self._listeners: list[Callable] = []
        self._subscription: Subscription | None = None
        self._task: asyncio.Task | None = None
        self._issued = 0
        self._applied = 0

    @property
    def store(self) -> OrderStore:
        return self._store or get_store()

    @property
    def feed(self) -> ChangeFeed:
        return self._feed or get_change_feed()

    @property
    @abstractmethod
    def scope_value(self) -> str:
        """Value of ``column`` that selects the rows this view follows."""
        ...

    @property
    def is_open(self) -> bool:
        return self._subscription is not None

    @abstractmethod
    def _authorize(self) -> None:
        """Raise AccessDenied when the session may not open this view."""
        ...

    @abstractmethod
    async def _load(self):
        """Read the authoritative rows and build a fresh view from them."""
        ...

    def on_update(self, callback: Callable) -> Callable:
        """Register ``callback(view)``; coroutine callbacks are awaited."""
        self._listeners.append(callback)
        return callback

    # -------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------
    async def refresh(self):
        """Re-fetch and rebuild the view. Errors propagate to the caller."""
        self._issued += 1
        ticket = self._issued
        view = await self._load()

        # A slower, older read must not overwrite a newer one.
        if ticket < self._applied:
            return self.view

        self._applied = ticket
        self.view = view
        self.last_error = None
        for callback in list(self._listeners):
            result = callback(view)
            if inspect.isawaitable(result):
                await result
        return view

    async def _consume(self, subscription: Subscription) -> None:
        async for signal in subscription:
            logger.debug(
                "change_signal_received",
                scope=self.column,
                value=self.scope_value,
                event_type=signal.event_type,
            )
            try:
                await self.refresh()
            except _EXPECTED as exc:
                self.last_error = exc
                logger.warning("sync_refresh_failed", scope=self.column, value=self.scope_value, error=str(exc))
            except Exception as exc:
                # The consumer must outlive a broken row or listener.
                self.last_error = exc
                logger.error(
                    "sync_refresh_crashed",
                    scope=self.column,
                    value=self.scope_value,
                    error=str(exc),
                    exc_info=True,
                )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    async def open(self):
        if self.is_open:
            return self

        self._authorize()
        # Subscribe before the first read so no change can slip in between.
        subscription = self.feed.subscribe(ORDERS_TABLE, self.column, self.scope_value)
        self._subscription = subscription
        self._task = asyncio.create_task(self._consume(subscription))
        try:
            await self.refresh()
        except BaseException:
            await self.close()
            raise
        return self

    async def close(self) -> None:
        subscription, self._subscription = self._subscription, None
        task, self._task = self._task, None
        if subscription is not None:
            subscription.close()
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


class OrderTracker(LiveView):
    """Live tracking view of a single order, scoped by order id."""

    column = "id"

    def __init__(
        self,
        order_id: str,
        session: AuthSession,
        store: OrderStore | None = None,
        feed: ChangeFeed | None = None,
        machine: OrderStageMachine | None = None,
        catalogue: CatalogueReader | None = None,
        enrich: bool = False,
    ):
        super().__init__(session, store=store, feed=feed)
        self.order_id = str(order_id)
        self.machine = machine or OrderStageMachine(store=store)
        self._catalogue = catalogue
        self._enrich = enrich
        self._in_flight: str | None = None

    @property
    def scope_value(self) -> str:
        return self.order_id

    @property
    def order(self) -> TrackedOrder | None:
        return self.view

    @property
    def mutation_in_flight(self) -> bool:
        return self._in_flight is not None

    def _authorize(self) -> None:
        if not self.session.is_authenticated:
            raise AccessDenied(self.order_id, None, "Sign in to track this order")

    async def _load(self) -> TrackedOrder:
        self._authorize()
        record = await self.store.fetch(self.order_id)
        if not self.session.owns(record.owner_id):
            raise AccessDenied(self.order_id, self.session.user_id)

        order = TrackedOrder.from_record(record)
        if self._enrich:
            order = await enrich_order(order, self._catalogue)
        return order

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    async def advance(self) -> TrackedOrder:
        return await self._mutate(self.machine.advance, "advance")

    async def confirm_receipt(self) -> TrackedOrder:
        return await self._mutate(self.machine.confirm_receipt, "confirm receipt of")

    async def _mutate(self, operation, action: str) -> TrackedOrder:
        if self._in_flight is not None:
            raise TransitionRejected(self.order_id, action, f"{self._in_flight} is still in progress")

        self._in_flight = action
        try:
            order = await self.refresh()
            updated = await operation(order, self.session)
        finally:
            self._in_flight = None

        try:
            return await self.refresh()
        except StoreError as exc:
            # The write landed; the next signal or refresh will catch up.
            self.last_error = exc
            logger.warning("post_transition_refresh_failed", order_id=self.order_id, error=str(exc))
            self.view = updated
            return updated


class OwnerOrdersTracker(LiveView):
    """Live list of one buyer's orders, newest first, scoped by owner id."""

    column = "owner_id"

    @property
    def scope_value(self) -> str:
        return str(self.session.user_id)

    @property
    def orders(self) -> tuple[TrackedOrder, ...]:
        return self.view or ()

    def _authorize(self) -> None:
        if not self.session.is_authenticated:
            raise AccessDenied(None, None, "Sign in to view orders")

    async def _load(self) -> tuple[TrackedOrder, ...]:
        self._authorize()
        records = await self.store.list_for_owner(self.session.user_id)
        return tuple(TrackedOrder.from_record(record) for record in records)
