"""
Priority and urgency classification for the Foyer Board Display.

Derives a priority level from label keywords and due dates, and decides
whether a card counts as urgent for rotation timing.

All day arithmetic uses the ceiling of (due - now) in days:
    due in 6.2 days  -> 7
    due 0.5 days ago -> 0 (still "today")
    due 1.5 days ago -> -1
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from foyer.core.config import DisplaySettings
from foyer.core.models import Card

SECONDS_PER_DAY = 24 * 60 * 60

BUILTIN_HIGH_KEYWORDS = ("high", "urgent")
BUILTIN_LOW_KEYWORDS = ("low",)

DEFAULT_SETTINGS = DisplaySettings()


class PriorityLevel(str, Enum):
    """Display priority of a card"""
    HIGH = "high"
    LOW = "low"
    OVERDUE = "overdue"
    URGENT = "urgent"
    NORMAL = "normal"


# Color hints for renderers
PRIORITY_COLORS = {
    PriorityLevel.HIGH: "error",
    PriorityLevel.LOW: "success",
    PriorityLevel.OVERDUE: "error",
    PriorityLevel.URGENT: "warning",
    PriorityLevel.NORMAL: "default",
}


@dataclass(frozen=True)
class PriorityInfo:
    """Priority level with its color hint"""
    level: PriorityLevel
    color: str


@dataclass(frozen=True)
class DueDateInfo:
    """Short due-date description with a color hint"""
    text: str
    color: str


def local_now() -> datetime:
    """Current time as an aware datetime in the system's local zone"""
    return datetime.now().astimezone()


def days_until_due(due: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """
    Ceiling of the number of days from now until due.

    Args:
        due: Due timestamp (aware)
        now: Current datetime (defaults to local now)

    Returns:
        Day difference (negative when overdue), or None without a due date
    """
    if due is None:
        return None
    if now is None:
        now = local_now()
    delta = (due - now).total_seconds() / SECONDS_PER_DAY
    return int(math.ceil(delta))


def _label_matches(card: Card, keywords: Tuple[str, ...]) -> bool:
    lowered = [kw.lower() for kw in keywords if kw]
    for label in card.labels:
        title = (label.title or "").lower()
        if any(kw in title for kw in lowered):
            return True
    return False


def classify(
    card: Card,
    now: Optional[datetime] = None,
    settings: Optional[DisplaySettings] = None,
) -> PriorityInfo:
    """
    Classify a card's display priority.

    Order of precedence:
        - Label containing a high keyword: HIGH
        - Label containing a low keyword: LOW
        - Due date in the past: OVERDUE
        - Due within the urgent threshold (inclusive): URGENT
        - Anything else: NORMAL

    Args:
        card: Card to classify
        now: Current datetime (defaults to local now)
        settings: Thresholds and keyword lists

    Returns:
        PriorityInfo with level and color hint
    """
    settings = settings or DEFAULT_SETTINGS

    if _label_matches(card, BUILTIN_HIGH_KEYWORDS + tuple(settings.high_priority_keywords)):
        level = PriorityLevel.HIGH
    elif _label_matches(card, BUILTIN_LOW_KEYWORDS + tuple(settings.low_priority_keywords)):
        level = PriorityLevel.LOW
    else:
        diff = days_until_due(card.due_date, now)
        if diff is None:
            level = PriorityLevel.NORMAL
        elif diff < 0:
            level = PriorityLevel.OVERDUE
        elif diff <= settings.urgent_threshold_days:
            level = PriorityLevel.URGENT
        else:
            level = PriorityLevel.NORMAL

    return PriorityInfo(level=level, color=PRIORITY_COLORS[level])


def is_recently_overdue(
    card: Card,
    now: Optional[datetime] = None,
    settings: Optional[DisplaySettings] = None,
) -> bool:
    """True if the card is overdue by no more than the overdue window"""
    settings = settings or DEFAULT_SETTINGS
    diff = days_until_due(card.due_date, now)
    return diff is not None and diff < 0 and abs(diff) <= settings.max_overdue_days


def is_urgent(
    card: Card,
    now: Optional[datetime] = None,
    settings: Optional[DisplaySettings] = None,
) -> bool:
    """
    Check whether a card counts as urgent.

    Cards without a due date are never urgent. Overdue cards are urgent
    only within the overdue window; older ones are stale. Cards due
    within the upcoming threshold (inclusive) are urgent.
    """
    settings = settings or DEFAULT_SETTINGS
    diff = days_until_due(card.due_date, now)
    if diff is None:
        return False
    if diff < 0:
        return abs(diff) <= settings.max_overdue_days
    return diff <= settings.upcoming_threshold_days


def describe_due_date(
    due: Optional[datetime],
    now: Optional[datetime] = None,
    settings: Optional[DisplaySettings] = None,
) -> Optional[DueDateInfo]:
    """
    Describe a due date for display.

    Returns:
        DueDateInfo, or None without a due date
    """
    settings = settings or DEFAULT_SETTINGS
    diff = days_until_due(due, now)
    if diff is None:
        return None

    date_str = due.astimezone().strftime("%d.%m")
    if diff < 0:
        return DueDateInfo(f"{date_str} ({abs(diff)}d overdue)", "error")
    if diff == 0:
        return DueDateInfo(f"{date_str} (today)", "warning")
    if diff == 1:
        return DueDateInfo(f"{date_str} (tomorrow)", "warning")
    if diff <= settings.upcoming_threshold_days:
        return DueDateInfo(f"{date_str} (in {diff}d)", "info")
    return DueDateInfo(date_str, "default")


class Classifier:
    """
    Settings-bound classifier.

    Convenience wrapper so callers can pass one object around instead of
    threading settings through every call.
    """

    def __init__(self, settings: Optional[DisplaySettings] = None):
        self.settings = settings or DEFAULT_SETTINGS

    def classify(self, card: Card, now: Optional[datetime] = None) -> PriorityInfo:
        return classify(card, now, self.settings)

    def is_urgent(self, card: Card, now: Optional[datetime] = None) -> bool:
        return is_urgent(card, now, self.settings)

    def is_recently_overdue(self, card: Card, now: Optional[datetime] = None) -> bool:
        return is_recently_overdue(card, now, self.settings)

    def describe_due_date(self, due: Optional[datetime], now: Optional[datetime] = None) -> Optional[DueDateInfo]:
        return describe_due_date(due, now, self.settings)
