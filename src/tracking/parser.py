"""Stage history parser — decodes the loosely-typed ``stages`` column.

Two storage shapes exist side by side and both must keep working:

1. Orders placed before the explicit workflow existed hold a single
   delivery record: ``[{"stage": "delivery", "address": ..., "instructions": ...}]``.
   The address is pulled out as DeliveryInfo and the default six-stage
   workflow is substituted.
2. Newer orders hold the stage list itself, ``[{"name", "completed",
   "timestamp"}, ...]``, possibly with delivery details on one entry. The
   list is used as-is; the first entry carrying an address supplies the
   DeliveryInfo and stays in the list.

Anything that cannot be decoded falls back to the default workflow.
Decoding failures are logged and never raised.
"""

import json
from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.exceptions import ValidationError

from shared.errors import StageDecodeFailure
from tracking.stages import DELIVERY_TAG, DeliveryInfo, Stage, default_workflow

logger = structlog.get_logger(__name__)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y"})


@dataclass(frozen=True)
class ParsedStages:
    stages: tuple[Stage, ...]
    delivery: DeliveryInfo | None = None
    recovered: bool = False  # True when the raw value was undecodable


def parse(raw, created_at: datetime | None) -> ParsedStages:
    """Decode ``raw`` into the canonical stage list plus any delivery details."""
    try:
        entries = _decode(raw)
    except StageDecodeFailure as exc:
        logger.warning("stage_history_undecodable", error=str(exc), raw_type=type(raw).__name__)
        return ParsedStages(stages=default_workflow(created_at), recovered=True)

    if not entries:
        return ParsedStages(stages=default_workflow(created_at))

    try:
        if len(entries) == 1 and entries[0].get("stage") == DELIVERY_TAG:
            return ParsedStages(stages=default_workflow(created_at), delivery=_delivery_from(entries[0]))

        delivery_entry = next((entry for entry in entries if entry.get("address")), None)
        delivery = _delivery_from(delivery_entry) if delivery_entry is not None else None
        stages = tuple(_normalize(entry) for entry in entries)
    except ValidationError as exc:
        logger.warning("stage_history_invalid", errors=exc.messages)
        return ParsedStages(stages=default_workflow(created_at), recovered=True)

    return ParsedStages(stages=stages, delivery=delivery)


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------
def _decode(raw) -> list[dict]:
    if raw is None:
        return []

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StageDecodeFailure("Stage history is not valid UTF-8", raw, exc) from exc

    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StageDecodeFailure("Stage history is not valid JSON", raw, exc) from exc

    if raw is None:
        return []
    if isinstance(raw, dict):
        return [raw]
    if not isinstance(raw, (list, tuple)):
        raise StageDecodeFailure(f"Unexpected stage history type {type(raw).__name__}", raw)

    for entry in raw:
        if not isinstance(entry, dict):
            raise StageDecodeFailure(f"Stage entry is not an object: {entry!r}", raw)
    return list(raw)


def _delivery_from(entry: dict) -> DeliveryInfo:
    return DeliveryInfo(
        address=str(entry.get("address") or ""),
        instructions=str(entry["instructions"]) if entry.get("instructions") else None,
    )


def _normalize(entry: dict) -> Stage:
    return Stage(
        name=str(entry.get("name") or entry.get("stage") or "Unknown"),
        completed=_coerce_completed(entry.get("completed")),
        timestamp=_parse_timestamp(entry.get("timestamp")),
    )


def _coerce_completed(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _parse_timestamp(value) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug("stage_timestamp_unreadable", value=value)
        return None
