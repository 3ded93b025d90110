"""Storage and change-feed ports — abstract interfaces for the hosted store.

The ordering core programs against these ports; adapters are swapped via
configuration. All storage calls are coroutines because the real store is
remote.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

ORDERS_TABLE = "orders"


@dataclass(frozen=True)
class OrderRecord:
    """One row of the ``orders`` table, exactly as stored.

    ``items`` and ``stages`` are opaque: they may be JSON text, decoded
    lists, or legacy shapes. Only the parsers in ``tracking`` interpret them.
    """

    id: str
    owner_id: str
    items: Any
    stages: Any
    status: str
    total: Decimal
    created_at: datetime
    updated_at: datetime | None = None

    def as_row(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "items": self.items,
            "stages": self.stages,
            "status": self.status,
            "total": self.total,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class RowChanged:
    """Signal that a row changed. Consumers must re-fetch; no payload is promised."""

    table: str
    event_type: str  # "INSERT" | "UPDATE" | "DELETE"
    row_id: str | None = None


class OrderStore(ABC):
    """Abstract interface for order storage adapters."""

    @abstractmethod
    async def fetch(self, order_id: str) -> OrderRecord:
        """Return the stored record. Raises NotFound."""
        ...

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> list[OrderRecord]:
        """Return the owner's orders, newest first."""
        ...

    @abstractmethod
    async def insert(
        self,
        owner_id: str,
        items: Any,
        stages: Any,
        status: str,
        total: Decimal,
    ) -> OrderRecord:
        """Insert a new order and return the stored record."""
        ...

    @abstractmethod
    async def update_for_owner(
        self,
        order_id: str,
        owner_id: str,
        *,
        stages: Any,
        status: str,
    ) -> OrderRecord:
        """Update stages and status, conditioned on ``owner_id``.

        Raises NotFound when the order does not exist, AccessDenied when it
        belongs to someone else, and StoreError when the store is unreachable.
        """
        ...


class Subscription(ABC):
    """An active change-feed subscription; iterate it to receive signals."""

    @abstractmethod
    def __aiter__(self): ...

    @abstractmethod
    async def __anext__(self) -> RowChanged: ...

    @abstractmethod
    def close(self) -> None:
        """Stop delivery. Pending iteration ends; calling twice is harmless."""
        ...


class ChangeFeed(ABC):
    """Abstract interface for per-table, column-filtered change notifications."""

    @abstractmethod
    def subscribe(self, table: str, column: str, value: str) -> Subscription:
        """Subscribe to changes of rows in ``table`` whose ``column`` equals ``value``."""
        ...
