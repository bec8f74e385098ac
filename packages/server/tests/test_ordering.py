"""
Unit tests for the ordering engine (no database).

Covers:
- Insert / complete / uncomplete / delete plans
- Reorder in both directions, bounds, "move to end"
- Precedence of completion changes over explicit indices
- Batch sequence assignments and permutation checks
"""

from __future__ import annotations

import random
import uuid

import pytest

from app.core.errors import OrderMismatch, OutOfBounds
from app.services.ordering import (
    OrderingPlan,
    Shift,
    TaskPosition,
    check_bounds,
    plan_complete,
    plan_delete,
    plan_insert,
    plan_reorder,
    plan_sequence,
    plan_uncomplete,
    plan_update,
)


def apply(indices: dict[str, int], plan: OrderingPlan, moving: str | None = None) -> dict[str, int]:
    """Apply a plan to an in-memory active partition, the way the store does."""
    result = dict(indices)
    for shift in plan.shifts:
        for name, index in indices.items():
            if name == moving:
                continue
            if index >= shift.start and (shift.stop is None or index <= shift.stop):
                result[name] = result[name] + shift.delta
    if moving is not None and plan.order_index is not None:
        result[moving] = plan.order_index
    return result


def dense(indices: dict[str, int]) -> bool:
    return sorted(indices.values()) == list(range(len(indices)))


# ---------------------------------------------------------------------------
# Single transitions
# ---------------------------------------------------------------------------


class TestTransitions:
    def test_insert_goes_to_top(self):
        plan = plan_insert()
        assert plan.shifts == (Shift(0, None, 1),)
        assert plan.order_index == 0
        assert plan.is_completed is False

        after = apply({"A": 0, "B": 1, "C": 2}, plan)
        after["T"] = plan.order_index
        assert after == {"T": 0, "A": 1, "B": 2, "C": 3}

    def test_complete_closes_gap(self):
        plan = plan_complete(1)
        assert plan.shifts == (Shift(2, None, -1),)
        assert plan.is_completed is True
        # The completed task keeps its stored index.
        assert plan.order_index is None

        after = apply({"A": 0, "C": 2}, plan)
        assert after == {"A": 0, "C": 1}

    def test_uncomplete_appends(self):
        plan = plan_uncomplete(1)
        assert plan.shifts == ()
        assert plan.is_completed is False
        assert plan.order_index == 2

    def test_uncomplete_into_empty_list(self):
        assert plan_uncomplete(None).order_index == 0

    def test_delete_active_compacts(self):
        plan = plan_delete(TaskPosition(order_index=1, is_completed=False))
        assert apply({"A": 0, "C": 2}, plan) == {"A": 0, "C": 1}

    def test_delete_completed_is_noop(self):
        assert plan_delete(TaskPosition(order_index=1, is_completed=True)).is_noop


# ---------------------------------------------------------------------------
# Reorder
# ---------------------------------------------------------------------------


class TestReorder:
    def test_move_up(self):
        plan = plan_reorder(3, 0, 3)
        assert plan.shifts == (Shift(0, 2, 1),)
        after = apply({"A": 0, "B": 1, "C": 2, "D": 3}, plan, moving="D")
        assert after == {"D": 0, "A": 1, "B": 2, "C": 3}

    def test_move_down(self):
        plan = plan_reorder(0, 2, 3)
        assert plan.shifts == (Shift(1, 2, -1),)
        after = apply({"A": 0, "B": 1, "C": 2, "D": 3}, plan, moving="A")
        assert after == {"B": 0, "C": 1, "A": 2, "D": 3}

    def test_same_index_is_noop(self):
        assert plan_reorder(2, 2, 3).is_noop

    def test_one_past_end_moves_to_last_slot(self):
        plan = plan_reorder(0, 4, 3)
        assert plan.order_index == 3
        after = apply({"A": 0, "B": 1, "C": 2, "D": 3}, plan, moving="A")
        assert after == {"B": 0, "C": 1, "D": 2, "A": 3}
        assert dense(after)

    def test_one_past_end_from_last_slot_is_noop(self):
        assert plan_reorder(3, 4, 3).is_noop

    def test_beyond_end_rejected(self):
        with pytest.raises(OutOfBounds) as exc_info:
            plan_reorder(0, 5, 3)
        assert exc_info.value.details == {"order_index": 5, "max_allowed": 4}
        assert "Max allowable is 4" in exc_info.value.message

    def test_negative_rejected(self):
        with pytest.raises(OutOfBounds):
            plan_reorder(1, -1, 3)

    def test_check_bounds_empty_partition(self):
        check_bounds(0, None)
        with pytest.raises(OutOfBounds):
            check_bounds(1, None)

    def test_random_moves_keep_density(self):
        rng = random.Random(7)
        names = [f"T{i}" for i in range(8)]
        indices = {name: i for i, name in enumerate(names)}
        for _ in range(200):
            moving = rng.choice(names)
            target = rng.randint(0, len(names))
            plan = plan_reorder(indices[moving], target, len(names) - 1)
            indices = apply(indices, plan, moving=moving)
            assert dense(indices)


# ---------------------------------------------------------------------------
# Partial update resolution
# ---------------------------------------------------------------------------


class TestPlanUpdate:
    def test_no_index_fields(self):
        plan = plan_update(
            TaskPosition(1, False), is_completed=None, order_index=None, max_active_index=3
        )
        assert plan.is_noop

    def test_complete_wins_over_order_index(self):
        plan = plan_update(
            TaskPosition(1, False), is_completed=True, order_index=0, max_active_index=3
        )
        assert plan == plan_complete(1)

    def test_uncomplete_ignores_order_index(self):
        plan = plan_update(
            TaskPosition(5, True), is_completed=False, order_index=0, max_active_index=1
        )
        assert plan.order_index == 2
        assert plan.is_completed is False

    def test_same_completion_state_falls_through_to_reorder(self):
        plan = plan_update(
            TaskPosition(2, False), is_completed=False, order_index=0, max_active_index=2
        )
        assert plan.order_index == 0
        assert plan.shifts == (Shift(0, 1, 1),)

    def test_reorder_of_completed_task_is_ignored(self):
        plan = plan_update(
            TaskPosition(4, True), is_completed=None, order_index=0, max_active_index=2
        )
        assert plan.is_noop

    def test_out_of_bounds_surfaces(self):
        with pytest.raises(OutOfBounds):
            plan_update(
                TaskPosition(0, False), is_completed=None, order_index=9, max_active_index=2
            )


# ---------------------------------------------------------------------------
# Batch sequence
# ---------------------------------------------------------------------------


class TestPlanSequence:
    def setup_method(self):
        self.a, self.b, self.c = (uuid.uuid4() for _ in range(3))
        self.current = {self.a: 0, self.b: 1, self.c: 2}

    def test_only_changed_indices_returned(self):
        assignments = plan_sequence(self.current, [self.a, self.c, self.b])
        assert assignments == {self.c: 1, self.b: 2}

    def test_unchanged_order_is_empty(self):
        assert plan_sequence(self.current, [self.a, self.b, self.c]) == {}

    def test_missing_id_rejected(self):
        with pytest.raises(OrderMismatch) as exc_info:
            plan_sequence(self.current, [self.a, self.b])
        assert exc_info.value.details["missing"] == [str(self.c)]

    def test_unknown_id_rejected(self):
        stranger = uuid.uuid4()
        with pytest.raises(OrderMismatch) as exc_info:
            plan_sequence(self.current, [self.a, self.b, self.c, stranger])
        assert exc_info.value.details["unknown"] == [str(stranger)]

    def test_duplicate_id_rejected(self):
        with pytest.raises(OrderMismatch):
            plan_sequence(self.current, [self.a, self.a, self.b, self.c])

    def test_empty_partition(self):
        assert plan_sequence({}, []) == {}
