"""In-memory storage and change feed — deterministic adapters for tests and development.

``InMemoryOrderStore`` applies the same ownership-conditioned update the
hosted store enforces, and publishes a ``RowChanged`` signal to the feed
after every write. Failure behavior is configurable for integration testing.
"""

import asyncio
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

import structlog

from shared.errors import AccessDenied, NotFound, StoreError
from storage.port import ORDERS_TABLE, ChangeFeed, OrderRecord, OrderStore, RowChanged, Subscription

logger = structlog.get_logger(__name__)

_CLOSED = object()


class QueueSubscription(Subscription):
    """A subscription backed by an asyncio queue."""

    def __init__(self, feed: "InMemoryChangeFeed", table: str, column: str, value: str):
        self.table = table
        self.column = column
        self.value = str(value)
        self._feed = feed
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def matches(self, table: str, row: dict) -> bool:
        return not self.closed and table == self.table and str(row.get(self.column)) == self.value

    def deliver(self, signal: RowChanged) -> None:
        self._queue.put_nowait(signal)

    def __aiter__(self):
        return self

    async def __anext__(self) -> RowChanged:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._feed._discard(self)
        self._queue.put_nowait(_CLOSED)


class InMemoryChangeFeed(ChangeFeed):
    """Fan-out of row-change signals to matching subscriptions."""

    def __init__(self):
        self._subscriptions: list[QueueSubscription] = []

    def subscribe(self, table: str, column: str, value: str) -> QueueSubscription:
        subscription = QueueSubscription(self, table, column, value)
        self._subscriptions.append(subscription)
        logger.debug("feed_subscribed", table=table, column=column, value=str(value))
        return subscription

    def publish(self, table: str, event_type: str, row: dict) -> int:
        """Deliver a signal to every subscription whose filter matches ``row``."""
        signal = RowChanged(table=table, event_type=event_type, row_id=row.get("id"))
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.matches(table, row):
                subscription.deliver(signal)
                delivered += 1
        return delivered

    @property
    def active_subscriptions(self) -> int:
        return len(self._subscriptions)

    def _discard(self, subscription: QueueSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug("feed_unsubscribed", table=subscription.table, column=subscription.column)


class InMemoryOrderStore(OrderStore):
    """Order store kept in a dict; succeeds by default."""

    def __init__(self, feed: InMemoryChangeFeed | None = None):
        self.feed = feed
        self._rows: dict[str, OrderRecord] = {}
        self.should_succeed = True
        self.failure_reason = "Store unavailable"
        self.update_calls = 0

    def configure(self, should_succeed: bool = True, failure_reason: str = "Store unavailable"):
        """Configure the fake store behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _check_available(self):
        if not self.should_succeed:
            raise StoreError(self.failure_reason)

    def _publish(self, event_type: str, record: OrderRecord) -> None:
        if self.feed is not None:
            self.feed.publish(ORDERS_TABLE, event_type, record.as_row())

    async def fetch(self, order_id: str) -> OrderRecord:
        self._check_available()
        record = self._rows.get(str(order_id))
        if record is None:
            raise NotFound("Order", str(order_id))
        return record

    async def list_for_owner(self, owner_id: str) -> list[OrderRecord]:
        self._check_available()
        rows = [r for r in self._rows.values() if r.owner_id == str(owner_id)]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    async def insert(
        self,
        owner_id: str,
        items: Any,
        stages: Any,
        status: str,
        total: Decimal,
        created_at: datetime | None = None,
    ) -> OrderRecord:
        self._check_available()
        now = created_at or datetime.now(UTC)
        record = OrderRecord(
            id=str(uuid4()),
            owner_id=str(owner_id),
            items=items,
            stages=stages,
            status=status,
            total=Decimal(total),
            created_at=now,
            updated_at=now,
        )
        self._rows[record.id] = record
        self._publish("INSERT", record)
        return record

    async def update_for_owner(
        self,
        order_id: str,
        owner_id: str,
        *,
        stages: Any,
        status: str,
    ) -> OrderRecord:
        self.update_calls += 1
        self._check_available()
        record = self._rows.get(str(order_id))
        if record is None:
            raise NotFound("Order", str(order_id))
        if record.owner_id != str(owner_id):
            raise AccessDenied(str(order_id), str(owner_id))

        updated = OrderRecord(
            id=record.id,
            owner_id=record.owner_id,
            items=record.items,
            stages=stages,
            status=status,
            total=record.total,
            created_at=record.created_at,
            updated_at=datetime.now(UTC),
        )
        self._rows[record.id] = updated
        self._publish("UPDATE", updated)
        return updated

    # -------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------
    def seed(self, record: OrderRecord) -> OrderRecord:
        """Store a record as-is (legacy shapes included) without publishing."""
        self._rows[record.id] = record
        return record

    def apply_external_change(self, order_id: str, **changes) -> OrderRecord:
        """Simulate a write from another channel, bypassing the ownership check."""
        record = self._rows[str(order_id)]
        values = record.as_row()
        values.update(changes, updated_at=datetime.now(UTC))
        updated = OrderRecord(**values)
        self._rows[record.id] = updated
        self._publish("UPDATE", updated)
        return updated

    def delete(self, order_id: str) -> None:
        record = self._rows.pop(str(order_id))
        self._publish("DELETE", record)
