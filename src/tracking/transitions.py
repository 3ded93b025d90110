"""Pure stage transitions and the derived status projection.

These functions never touch storage and never mutate their input; they
return a new stage tuple or raise TransitionRejected.
"""

from datetime import datetime

from shared.errors import TransitionRejected
from tracking.stages import Stage, StageName


def current_index(stages) -> int | None:
    """Index of the first incomplete stage, or None when the order is terminal."""
    return next((i for i, stage in enumerate(stages) if not stage.completed), None)


def is_terminal(stages) -> bool:
    return current_index(stages) is None


def derive_status(stages) -> str:
    """Status shown for ``stages``: the current stage name, or the terminal name."""
    index = current_index(stages)
    if index is not None:
        return stages[index].name
    if not stages:
        return StageName.ORDER_PLACED.value
    if stages[-1].name == StageName.DELIVERED.value:
        return StageName.CONFIRMED_RECEIVED.value
    return stages[-1].name


def _completion_time(stages, index: int, now: datetime) -> datetime:
    """``now``, but never earlier than a completed stage before ``index``."""
    earlier = [s.timestamp for s in stages[:index] if s.completed and s.timestamp is not None]
    if not earlier:
        return now
    try:
        return max(now, *earlier)
    except TypeError:
        # Naive and aware timestamps cannot be compared; keep the clock reading.
        return now


def _complete_at(stages, index: int, now: datetime) -> tuple[Stage, ...]:
    updated = list(stages)
    updated[index] = stages[index].complete(_completion_time(stages, index, now))
    return tuple(updated)


def advance_stages(stages, now: datetime) -> tuple[Stage, ...]:
    """Complete the current stage. A terminal stage list is returned unchanged."""
    stages = tuple(stages)
    index = current_index(stages)
    if index is None:
        return stages
    return _complete_at(stages, index, now)


def confirm_receipt_stages(stages, now: datetime, order_id: str = "") -> tuple[Stage, ...]:
    """Complete a trailing "Delivered" stage once every earlier stage is done."""
    stages = tuple(stages)
    if not stages:
        raise TransitionRejected(order_id, "confirm receipt of", "order has no stages")

    last = stages[-1]
    if last.name != StageName.DELIVERED.value:
        raise TransitionRejected(order_id, "confirm receipt of", f"last stage is {last.name!r}, not 'Delivered'")
    if last.completed:
        raise TransitionRejected(order_id, "confirm receipt of", "receipt is already confirmed")

    index = current_index(stages)
    if index != len(stages) - 1:
        raise TransitionRejected(
            order_id,
            "confirm receipt of",
            f"stage {stages[index].name!r} is still pending",
        )
    return _complete_at(stages, index, now)


def assert_monotonic(before, after, order_id: str = "") -> None:
    """Reject any transition that would reopen or re-date a completed stage."""
    if len(before) != len(after):
        raise TransitionRejected(order_id, "update", "stage list length changed")
    for old, new in zip(before, after, strict=True):
        if old.completed and (not new.completed or new.timestamp != old.timestamp):
            raise TransitionRejected(order_id, "update", f"stage {old.name!r} would be reopened")
