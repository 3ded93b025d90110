"""Storage adapter factory.

Provides get_store() / set_store() and get_change_feed() to swap
implementations. Only the in-memory adapter ships; select it explicitly
with ``STORAGE_ADAPTER=memory`` (the default).
"""

import os

from storage.port import ChangeFeed, OrderStore

_current_store: OrderStore | None = None
_current_feed: ChangeFeed | None = None


def _build_default():
    global _current_store, _current_feed
    adapter = os.environ.get("STORAGE_ADAPTER", "memory")
    if adapter == "memory":
        from storage.memory_adapter import InMemoryChangeFeed, InMemoryOrderStore

        feed = InMemoryChangeFeed()
        _current_feed = _current_feed or feed
        _current_store = _current_store or InMemoryOrderStore(feed=_current_feed)
    else:
        raise ValueError(f"Unknown storage adapter: {adapter}")


def get_store() -> OrderStore:
    """Return the current order store. Defaults to InMemoryOrderStore."""
    if _current_store is None:
        _build_default()
    return _current_store


def get_change_feed() -> ChangeFeed:
    """Return the change feed paired with the current store."""
    if _current_feed is None:
        _build_default()
    return _current_feed


def set_store(store: OrderStore, feed: ChangeFeed | None = None) -> None:
    """Override the active store (and optionally its feed). Useful for tests."""
    global _current_store, _current_feed
    _current_store = store
    _current_feed = feed or getattr(store, "feed", None)


def reset_store() -> None:
    """Reset to the default adapters."""
    global _current_store, _current_feed
    _current_store = None
    _current_feed = None
