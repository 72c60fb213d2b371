"""
Unit tests for the sorter module.
Tests task extraction and the tiered priority ordering.
"""

import pytest
from datetime import datetime, timedelta, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from foyer.core.models import AssignedUser, Board, Card, Stack
from foyer.dashboard.sorter import (
    extract_tasks,
    sort_tasks_by_priority,
    top_tasks,
    urgent_task_count,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def users(n):
    return tuple(AssignedUser(uid=f"u{i}") for i in range(n))


def make_board(*cards, board_id=1):
    return Board(id=board_id, title="Office", stacks=(Stack(id=10, title="Todo", cards=tuple(cards)),))


def ids(tasks):
    return [t.id for t in tasks]


class TestExtractTasks:
    """Tests for flattening boards into tasks."""

    def test_skips_archived_and_done(self):
        board = make_board(
            Card(id=1),
            Card(id=2, archived=True),
            Card(id=3, done=True),
        )
        assert ids(extract_tasks(board)) == [1]

    def test_carries_board_and_stack(self):
        task = extract_tasks(make_board(Card(id=1)))[0]
        assert task.board_title == "Office"
        assert task.stack_title == "Todo"
        assert task.stack_id == 10

    def test_none_board(self):
        assert extract_tasks(None) == []


class TestSortOrder:
    """Tests for the tiered comparator."""

    def test_overdue_then_assigned_then_unassigned(self):
        board = make_board(
            Card(id=3, title="Unassigned"),
            Card(id=2, title="Two people", assigned_users=users(2)),
            Card(id=1, title="Late", due_date=NOW - timedelta(days=1)),
        )
        assert ids(top_tasks(board, 5, NOW)) == [1, 2, 3]

    def test_most_overdue_first(self):
        board = make_board(
            Card(id=1, due_date=NOW - timedelta(days=2)),
            Card(id=2, due_date=NOW - timedelta(days=10)),
        )
        assert ids(top_tasks(board, 5, NOW)) == [2, 1]

    def test_upcoming_earliest_first(self):
        board = make_board(
            Card(id=1, due_date=NOW + timedelta(days=20)),
            Card(id=2, due_date=NOW + timedelta(days=2)),
            Card(id=3, due_date=NOW - timedelta(hours=2)),
        )
        assert ids(top_tasks(board, 5, NOW)) == [3, 2, 1]

    def test_overdue_before_upcoming(self):
        board = make_board(
            Card(id=1, due_date=NOW + timedelta(days=1)),
            Card(id=2, due_date=NOW - timedelta(days=3)),
        )
        assert ids(top_tasks(board, 5, NOW)) == [2, 1]

    def test_stale_overdue_falls_to_later_tiers(self):
        board = make_board(
            Card(id=1, due_date=NOW - timedelta(days=45)),
            Card(id=2, due_date=NOW + timedelta(days=30)),
            Card(id=3, assigned_users=users(1)),
        )
        assert ids(top_tasks(board, 5, NOW)) == [2, 3, 1]

    def test_more_assignees_first(self):
        board = make_board(
            Card(id=1, assigned_users=users(1)),
            Card(id=2, assigned_users=users(3)),
        )
        assert ids(top_tasks(board, 5, NOW)) == [2, 1]

    def test_newest_first_missing_created_last(self):
        board = make_board(
            Card(id=1),
            Card(id=2, created_at=NOW - timedelta(days=5)),
            Card(id=3, created_at=NOW - timedelta(days=1)),
        )
        assert ids(top_tasks(board, 5, NOW)) == [3, 2, 1]

    def test_full_ties_keep_input_order(self):
        board = make_board(Card(id=5), Card(id=4), Card(id=6))
        assert ids(top_tasks(board, 5, NOW)) == [5, 4, 6]

    def test_sort_does_not_modify_input(self):
        tasks = extract_tasks(make_board(Card(id=1), Card(id=2, assigned_users=users(1))))
        sort_tasks_by_priority(tasks, NOW)
        assert ids(tasks) == [1, 2]


class TestTopTasks:
    """Tests for truncation and determinism."""

    def test_limit(self):
        board = make_board(*[Card(id=i) for i in range(1, 9)])
        assert len(top_tasks(board, 5, NOW)) == 5
        assert top_tasks(board, 0, NOW) == []

    def test_idempotent(self):
        board = make_board(
            Card(id=1, due_date=NOW - timedelta(days=1)),
            Card(id=2, assigned_users=users(2)),
            Card(id=3, created_at=NOW),
            Card(id=4),
        )
        assert top_tasks(board, 5, NOW) == top_tasks(board, 5, NOW)

    def test_never_returns_inactive(self):
        board = make_board(
            Card(id=1, archived=True, due_date=NOW - timedelta(days=1)),
            Card(id=2, done=True, assigned_users=users(4)),
            Card(id=3),
        )
        assert ids(top_tasks(board, 5, NOW)) == [3]

    def test_tasks_across_stacks(self):
        board = Board(id=1, stacks=(
            Stack(id=1, cards=(Card(id=1),)),
            Stack(id=2, cards=(Card(id=2, due_date=NOW + timedelta(days=1)),)),
        ))
        assert ids(top_tasks(board, 5, NOW)) == [2, 1]


class TestUrgentTaskCount:
    """Tests for counting urgent tasks on a board."""

    def test_counts_active_urgent_only(self):
        board = make_board(
            Card(id=1, due_date=NOW + timedelta(days=2)),
            Card(id=2, due_date=NOW - timedelta(days=2)),
            Card(id=3, due_date=NOW + timedelta(days=2), done=True),
            Card(id=4, due_date=NOW + timedelta(days=20)),
            Card(id=5),
        )
        assert urgent_task_count(board, NOW) == 2

    def test_none_board(self):
        assert urgent_task_count(None, NOW) == 0
