"""
Dashboard module for the Foyer Board Display.

Provides priority classification, task ordering, board rotation and the
display service that ties them to the aggregated Deck data.
"""

from .classifier import (
    Classifier,
    PriorityLevel,
    PriorityInfo,
    DueDateInfo,
    classify,
    is_urgent,
    days_until_due,
    describe_due_date,
)
from .sorter import (
    extract_tasks,
    sort_tasks_by_priority,
    top_tasks,
    urgent_task_count,
)
from .rotation import (
    RotationScheduler,
    RotationState,
    RotationPhase,
    calculate_display_duration,
)
from .service import DisplayService, DisplayStatus
from .formatter import DisplayFormatter

__all__ = [
    # Classifier
    'Classifier',
    'PriorityLevel',
    'PriorityInfo',
    'DueDateInfo',
    'classify',
    'is_urgent',
    'days_until_due',
    'describe_due_date',
    # Sorter
    'extract_tasks',
    'sort_tasks_by_priority',
    'top_tasks',
    'urgent_task_count',
    # Rotation
    'RotationScheduler',
    'RotationState',
    'RotationPhase',
    'calculate_display_duration',
    # Service
    'DisplayService',
    'DisplayStatus',
    # Formatter
    'DisplayFormatter',
]
