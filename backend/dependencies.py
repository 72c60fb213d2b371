"""
Dependency injection for FastAPI endpoints.

Provides singleton instances of Config, DeckClient, DeckAggregator and
DisplayService to be used across all API routes. Tests replace them
through app.dependency_overrides.
"""

from functools import lru_cache
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from foyer.core.config import Config
from foyer.dashboard.service import DisplayService
from foyer.deck.aggregator import DeckAggregator
from foyer.deck.client import DeckClient


@lru_cache()
def get_config() -> Config:
    """
    Get cached Config instance.

    lru_cache keeps one Config for the lifetime of the application.
    """
    return Config()


@lru_cache()
def get_deck_client() -> DeckClient:
    """Get cached DeckClient; its requests.Session is reused across calls."""
    return DeckClient.from_config(get_config())


@lru_cache()
def get_aggregator() -> DeckAggregator:
    """Get cached DeckAggregator."""
    return DeckAggregator(get_deck_client(), get_config())


@lru_cache()
def get_display_service() -> DisplayService:
    """
    Get cached DisplayService.

    The service owns the rotation timers and the background refresh job,
    so there must be exactly one per process.
    """
    return DisplayService(get_config(), get_aggregator())
