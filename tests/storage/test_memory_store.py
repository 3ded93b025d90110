"""Tests for the in-memory order store and change feed."""

import asyncio
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from shared.errors import AccessDenied, NotFound, StoreError
from storage import get_change_feed, get_store, reset_store, set_store
from storage.memory_adapter import InMemoryChangeFeed, InMemoryOrderStore


async def _insert(store, owner_id="buyer-001", created_at=None):
    return await store.insert(
        owner_id=owner_id,
        items="[]",
        stages="[]",
        status="Payment Pending",
        total=Decimal("100.00"),
        created_at=created_at,
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
class TestInMemoryOrderStore:
    @pytest.mark.asyncio
    async def test_insert_and_fetch(self):
        store = InMemoryOrderStore()
        record = await _insert(store)
        fetched = await store.fetch(record.id)
        assert fetched == record
        assert fetched.total == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_fetch_unknown(self):
        with pytest.raises(NotFound):
            await InMemoryOrderStore().fetch("ord-missing")

    @pytest.mark.asyncio
    async def test_list_for_owner_newest_first(self):
        store = InMemoryOrderStore()
        old = await _insert(store, created_at=datetime(2024, 1, 1, tzinfo=UTC))
        new = await _insert(store, created_at=datetime(2024, 2, 1, tzinfo=UTC))
        await _insert(store, owner_id="buyer-999")

        assert [r.id for r in await store.list_for_owner("buyer-001")] == [new.id, old.id]

    @pytest.mark.asyncio
    async def test_update_for_owner(self):
        store = InMemoryOrderStore()
        record = await _insert(store)
        updated = await store.update_for_owner(record.id, "buyer-001", stages="[1]", status="Processing")
        assert updated.status == "Processing"
        assert updated.stages == "[1]"
        assert updated.created_at == record.created_at
        assert store.update_calls == 1

    @pytest.mark.asyncio
    async def test_update_by_other_owner_denied(self):
        store = InMemoryOrderStore()
        record = await _insert(store)
        with pytest.raises(AccessDenied):
            await store.update_for_owner(record.id, "buyer-999", stages="[]", status="Processing")
        assert (await store.fetch(record.id)).status == "Payment Pending"

    @pytest.mark.asyncio
    async def test_update_unknown(self):
        with pytest.raises(NotFound):
            await InMemoryOrderStore().update_for_owner("ord-missing", "buyer-001", stages="[]", status="x")

    @pytest.mark.asyncio
    async def test_configured_failure(self):
        store = InMemoryOrderStore()
        store.configure(should_succeed=False, failure_reason="Service unavailable")
        with pytest.raises(StoreError, match="Service unavailable"):
            await _insert(store)
        with pytest.raises(StoreError):
            await store.fetch("ord-1")

    @pytest.mark.asyncio
    async def test_configure_restores_behavior(self):
        store = InMemoryOrderStore()
        store.configure(should_succeed=False)
        store.configure(should_succeed=True)
        record = await _insert(store)
        assert record.id


# ---------------------------------------------------------------------------
# Change feed
# ---------------------------------------------------------------------------
class TestInMemoryChangeFeed:
    @pytest.mark.asyncio
    async def test_update_signals_matching_subscriptions(self):
        feed = InMemoryChangeFeed()
        store = InMemoryOrderStore(feed=feed)
        record = await _insert(store)
        by_id = feed.subscribe("orders", "id", record.id)
        by_owner = feed.subscribe("orders", "owner_id", "buyer-001")
        other = feed.subscribe("orders", "owner_id", "buyer-999")

        await store.update_for_owner(record.id, "buyer-001", stages="[]", status="Processing")

        for subscription in (by_id, by_owner):
            signal = await asyncio.wait_for(subscription.__anext__(), timeout=1)
            assert signal.event_type == "UPDATE"
            assert signal.row_id == record.id
        assert other._queue.empty()

    def test_publish_counts_deliveries(self):
        feed = InMemoryChangeFeed()
        feed.subscribe("orders", "owner_id", "buyer-001")
        feed.subscribe("products", "owner_id", "buyer-001")
        assert feed.publish("orders", "UPDATE", {"id": "ord-1", "owner_id": "buyer-001"}) == 1

    @pytest.mark.asyncio
    async def test_close_ends_iteration_and_unsubscribes(self):
        feed = InMemoryChangeFeed()
        subscription = feed.subscribe("orders", "id", "ord-1")
        assert feed.active_subscriptions == 1

        subscription.close()
        subscription.close()

        assert feed.active_subscriptions == 0
        assert [signal async for signal in subscription] == []
        assert feed.publish("orders", "UPDATE", {"id": "ord-1"}) == 0

    @pytest.mark.asyncio
    async def test_external_change_is_published(self):
        feed = InMemoryChangeFeed()
        store = InMemoryOrderStore(feed=feed)
        record = await _insert(store)
        subscription = feed.subscribe("orders", "id", record.id)

        changed = store.apply_external_change(record.id, status="Shipped")

        assert changed.status == "Shipped"
        signal = await asyncio.wait_for(subscription.__anext__(), timeout=1)
        assert signal.event_type == "UPDATE"


# ---------------------------------------------------------------------------
# Adapter factory
# ---------------------------------------------------------------------------
class TestStorageFactory:
    def test_default_store_has_paired_feed(self):
        reset_store()
        store = get_store()
        assert isinstance(store, InMemoryOrderStore)
        assert get_change_feed() is store.feed
        assert get_store() is store

    def test_set_store_uses_store_feed(self):
        feed = InMemoryChangeFeed()
        store = InMemoryOrderStore(feed=feed)
        set_store(store)
        assert get_store() is store
        assert get_change_feed() is feed

    def test_unknown_adapter(self, monkeypatch):
        reset_store()
        monkeypatch.setenv("STORAGE_ADAPTER", "postgres")
        with pytest.raises(ValueError, match="Unknown storage adapter"):
            get_store()
