"""
API routers for the Foyer Board Display backend.

Each router handles a specific domain:
- tasks: Direct Deck access (aggregated tasks, boards, stacks, cards)
- display: Rotation state, display tasks and board selection
"""

from .tasks import router as tasks_router
from .display import router as display_router

__all__ = [
    'tasks_router',
    'display_router',
]
