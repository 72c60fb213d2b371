"""
Task ordering for the Foyer Board Display.

Flattens a board's active cards into DisplayTasks and orders them with a
strict tiered comparator:

    1. Overdue (within the overdue window), most overdue first
    2. Due today or later, earliest first
    3. Assigned, most assignees first
    4. Everything else, newest first (missing creation time = epoch)

Each tier only breaks ties left by the previous one. Python's sort is
stable, so remaining ties keep input order.
"""

import functools
from datetime import datetime, timezone
from typing import List, Optional

from foyer.core.config import DisplaySettings
from foyer.core.models import Board, DisplayTask
from foyer.dashboard.classifier import (
    DEFAULT_SETTINGS,
    days_until_due,
    is_recently_overdue,
    is_urgent,
    local_now,
)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DEFAULT_TASK_LIMIT = 5


def extract_tasks(board: Optional[Board]) -> List[DisplayTask]:
    """
    Flatten every active card of a board into DisplayTasks.

    Archived and done cards are skipped.
    """
    if board is None:
        return []

    board_title = board.title or f"Board {board.id}"
    tasks = []
    for stack in board.stacks:
        for card in stack.cards:
            if card.is_active():
                tasks.append(DisplayTask(
                    card=card,
                    board_id=board.id,
                    board_title=board_title,
                    stack_id=stack.id,
                    stack_title=stack.title,
                ))
    return tasks


def urgent_task_count(
    board: Optional[Board],
    now: Optional[datetime] = None,
    settings: Optional[DisplaySettings] = None,
) -> int:
    """Count active cards on a board that are urgent"""
    if board is None:
        return 0
    if now is None:
        now = local_now()
    return sum(
        1
        for stack in board.stacks
        for card in stack.cards
        if card.is_active() and is_urgent(card, now, settings)
    )


def _compare(a: DisplayTask, b: DisplayTask, now: datetime, settings: DisplaySettings) -> int:
    a_overdue = is_recently_overdue(a.card, now, settings)
    b_overdue = is_recently_overdue(b.card, now, settings)

    # 1. Overdue first
    if a_overdue != b_overdue:
        return -1 if a_overdue else 1
    if a_overdue and b_overdue:
        return _cmp(a.due_date, b.due_date)

    # 2. Due today or later
    a_diff = days_until_due(a.due_date, now)
    b_diff = days_until_due(b.due_date, now)
    a_upcoming = a_diff is not None and a_diff >= 0
    b_upcoming = b_diff is not None and b_diff >= 0
    if a_upcoming != b_upcoming:
        return -1 if a_upcoming else 1
    if a_upcoming and b_upcoming:
        return _cmp(a.due_date, b.due_date)

    # 3. More assignees first
    a_assigned = a.assigned_count
    b_assigned = b.assigned_count
    if (a_assigned > 0) != (b_assigned > 0):
        return -1 if a_assigned > 0 else 1
    if a_assigned != b_assigned:
        return b_assigned - a_assigned

    # 4. Newest first
    return _cmp(b.created_at or EPOCH, a.created_at or EPOCH)


def _cmp(x: datetime, y: datetime) -> int:
    if x < y:
        return -1
    if x > y:
        return 1
    return 0


def sort_tasks_by_priority(
    tasks: List[DisplayTask],
    now: Optional[datetime] = None,
    settings: Optional[DisplaySettings] = None,
) -> List[DisplayTask]:
    """
    Sort tasks by display priority.

    Args:
        tasks: Tasks to sort (not modified)
        now: Current datetime (defaults to local now)
        settings: Overdue window

    Returns:
        New sorted list
    """
    if now is None:
        now = local_now()
    settings = settings or DEFAULT_SETTINGS
    key = functools.cmp_to_key(lambda a, b: _compare(a, b, now, settings))
    return sorted(tasks, key=key)


def top_tasks(
    board: Optional[Board],
    limit: int = DEFAULT_TASK_LIMIT,
    now: Optional[datetime] = None,
    settings: Optional[DisplaySettings] = None,
) -> List[DisplayTask]:
    """
    Get the top N active tasks of a board, sorted by priority.

    Recomputed from scratch on every call.
    """
    if limit <= 0:
        return []
    tasks = extract_tasks(board)
    return sort_tasks_by_priority(tasks, now, settings)[:limit]
