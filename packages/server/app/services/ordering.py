"""
Ordering engine: pure decisions about a user's manual task order.

A user's incomplete tasks (the active partition) carry a dense
``order_index`` 0..N-1. Completed tasks keep whatever index they had when
they were completed; it is never read or shifted again.

Every function takes the current state and returns an ``OrderingPlan``:
the range shifts to apply to *other* active tasks, plus the completion
state and index to assign to the task itself. Nothing here touches the
database, and invalid requests raise before the caller writes anything.

State machine over (completion, order_index):

    create      -> Active(0), every Active(i) -> Active(i+1)
    complete    Active(i) -> Completed, every Active(j > i) -> Active(j-1)
    uncomplete  Completed -> Active(max + 1), nothing else moves
    reorder     Active(old) -> Active(new), the range between closes up
    delete      Active(i) -> gone, every Active(j > i) -> Active(j-1)

"No active tasks" arrives as ``None``; it is counted as index -1.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from app.core.errors import OrderMismatch, OutOfBounds

NO_ACTIVE_TASKS = -1


@dataclass(frozen=True)
class Shift:
    """Add ``delta`` to every active index in ``[start, stop]``.

    ``stop=None`` leaves the range open at the top.
    """

    start: int
    stop: Optional[int]
    delta: int


@dataclass(frozen=True)
class TaskPosition:
    order_index: int
    is_completed: bool


@dataclass(frozen=True)
class OrderingPlan:
    shifts: tuple[Shift, ...] = ()
    # New completion state for the task itself; None leaves it unchanged.
    is_completed: Optional[bool] = None
    # Explicit index for the task itself; None leaves the stored value alone.
    order_index: Optional[int] = None

    @property
    def is_noop(self) -> bool:
        return not self.shifts and self.is_completed is None and self.order_index is None


def _max(max_active_index: Optional[int]) -> int:
    return NO_ACTIVE_TASKS if max_active_index is None else max_active_index


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def plan_insert() -> OrderingPlan:
    """New tasks always enter at the top."""
    return OrderingPlan(shifts=(Shift(0, None, 1),), is_completed=False, order_index=0)


def plan_complete(current_index: int) -> OrderingPlan:
    """Freeze the task's index and close the gap it leaves."""
    return OrderingPlan(shifts=(Shift(current_index + 1, None, -1),), is_completed=True)


def plan_uncomplete(max_active_index: Optional[int]) -> OrderingPlan:
    """Append to the end of the active partition."""
    return OrderingPlan(is_completed=False, order_index=_max(max_active_index) + 1)


def check_bounds(new_index: int, max_active_index: Optional[int]) -> None:
    upper = _max(max_active_index) + 1
    if new_index < 0:
        raise OutOfBounds(
            "Order index cannot be negative.",
            details={"order_index": new_index, "max_allowed": upper},
        )
    if new_index > upper:
        raise OutOfBounds(
            f"Order index {new_index} is out of bounds. Max allowable is {upper}.",
            details={"order_index": new_index, "max_allowed": upper},
        )


def plan_reorder(
    old_index: int, new_index: int, max_active_index: Optional[int]
) -> OrderingPlan:
    check_bounds(new_index, max_active_index)
    # The moving task is itself active, so "one past the end" is the last slot.
    target = min(new_index, _max(max_active_index))
    if target == old_index:
        return OrderingPlan()
    if target < old_index:
        return OrderingPlan(shifts=(Shift(target, old_index - 1, 1),), order_index=target)
    return OrderingPlan(shifts=(Shift(old_index + 1, target, -1),), order_index=target)


def plan_delete(position: TaskPosition) -> OrderingPlan:
    if position.is_completed:
        return OrderingPlan()
    return OrderingPlan(shifts=(Shift(position.order_index + 1, None, -1),))


def plan_update(
    current: TaskPosition,
    *,
    is_completed: Optional[bool],
    order_index: Optional[int],
    max_active_index: Optional[int],
) -> OrderingPlan:
    """Resolve a partial update that may touch completion and/or order.

    A completion change takes precedence over an explicit ``order_index``:
    completing freezes the index, uncompleting always appends. Only a task
    that is and stays active can be reordered; for a completed one the
    requested index is ignored.
    """
    if is_completed is not None and is_completed != current.is_completed:
        if is_completed:
            return plan_complete(current.order_index)
        return plan_uncomplete(max_active_index)
    if order_index is None or current.is_completed:
        return OrderingPlan()
    return plan_reorder(current.order_index, order_index, max_active_index)


# ---------------------------------------------------------------------------
# Batch reorder
# ---------------------------------------------------------------------------


def plan_sequence(
    current: Mapping[uuid.UUID, int], ordered_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, int]:
    """Turn a full top-to-bottom ordering into the index assignments that change.

    ``ordered_ids`` must be a permutation of the active task ids in ``current``.
    """
    if len(set(ordered_ids)) != len(ordered_ids):
        raise OrderMismatch("Task order lists a task more than once.")
    missing = set(current) - set(ordered_ids)
    unknown = set(ordered_ids) - set(current)
    if missing or unknown:
        raise OrderMismatch(
            details={
                "missing": sorted(str(t) for t in missing),
                "unknown": sorted(str(t) for t in unknown),
            }
        )
    return {
        task_id: index
        for index, task_id in enumerate(ordered_ids)
        if current[task_id] != index
    }
