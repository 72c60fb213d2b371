"""
Deck integration for the Foyer Board Display.

Provides the remote API client and the fallback-chain board aggregator.
"""

from .client import DeckClient, DeckError, DeckAPIError
from .aggregator import DeckAggregator, BoardFetch, FetchStatus

__all__ = [
    # Client
    'DeckClient',
    'DeckError',
    'DeckAPIError',
    # Aggregator
    'DeckAggregator',
    'BoardFetch',
    'FetchStatus',
]
