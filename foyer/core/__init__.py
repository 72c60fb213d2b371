"""
Core module for the Foyer Board Display
Contains configuration, selection persistence and model definitions
"""

from .config import Config, DeckSettings, DisplaySettings, configure_logging
from .models import Label, AssignedUser, Card, Stack, Board, AggregateResult, DisplayTask
from .selection import BoardSelectionStore

__all__ = [
    'Config', 'DeckSettings', 'DisplaySettings', 'configure_logging',
    'Label', 'AssignedUser', 'Card', 'Stack', 'Board', 'AggregateResult', 'DisplayTask',
    'BoardSelectionStore',
]
