"""
Display service for the Foyer Board Display.

Owns the one piece of shared mutable state: the current AggregateResult
paired with the RotationScheduler that walks it. Manual refreshes,
background refreshes and selection changes all funnel through refresh(),
which swaps the result and reloads the scheduler under a single lock so
no reader ever sees a new result with a stale board index.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from foyer.core.config import Config
from foyer.core.models import AggregateResult, DisplayTask
from foyer.core.selection import BoardSelectionStore
from foyer.dashboard.classifier import local_now
from foyer.dashboard.rotation import RotationScheduler, RotationState
from foyer.dashboard.sorter import top_tasks
from foyer.deck.aggregator import DeckAggregator
from foyer.deck.client import DeckError

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "deck_refresh"


@dataclass(frozen=True)
class DisplayStatus:
    """Fetch status for the rendering layer"""
    loading: bool
    error: Optional[str]
    last_updated: Optional[datetime]
    has_data: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loading": self.loading,
            "error": self.error,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "has_data": self.has_data,
        }


class DisplayService:
    """
    Refresh orchestration and read API for the display.

    Usage:
        service = DisplayService(config, aggregator)
        service.refresh()
        service.start_background_refresh()

        state = service.get_rotation_state()
        tasks = service.get_display_tasks()
    """

    def __init__(
        self,
        config: Config,
        aggregator: DeckAggregator,
        store: Optional[BoardSelectionStore] = None,
        scheduler: Optional[RotationScheduler] = None,
        instance_id: Optional[str] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Configuration
            aggregator: Board aggregator
            store: Selection store (defaults to the config directory file)
            scheduler: Rotation scheduler (defaults to one driven by APScheduler jobs)
            instance_id: Selection key (defaults to config instance id)
        """
        self.config = config
        self.settings = config.display_settings()
        self.aggregator = aggregator
        self.store = store or BoardSelectionStore(config.selection_file)
        self.scheduler = scheduler or RotationScheduler(self.settings)
        self.instance_id = instance_id or config.instance_id()

        self._lock = threading.RLock()
        self._result: Optional[AggregateResult] = None
        self._error: Optional[str] = None
        self._last_updated: Optional[datetime] = None
        self._loading = False
        self._background: Optional[BackgroundScheduler] = None

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def resolve_board_ids(self) -> List[int]:
        """
        Board ids to fetch.

        Persisted selection first, then configured default boards; an
        empty list means every visible board.
        """
        selected = self.store.load(self.instance_id)
        if selected:
            return selected
        return list(self.config.deck_settings().default_boards)

    def refresh(
        self,
        show_loading: bool = True,
        board_ids: Optional[List[int]] = None,
    ) -> Optional[AggregateResult]:
        """
        Fetch boards and replace the current result.

        The last fetch to complete wins. On failure the previous result
        stays in place and the error is recorded.

        Args:
            show_loading: Flag a blocking indicator while fetching
            board_ids: Explicit boards, bypassing selection and defaults

        Returns:
            The new AggregateResult, or None if the fetch failed
        """
        if not board_ids:
            board_ids = self.resolve_board_ids()
        if show_loading:
            with self._lock:
                self._loading = True

        try:
            result = self.aggregator.fetch_all(board_ids)
        except DeckError as e:
            logger.error(f"Board refresh failed, keeping previous data: {e}")
            with self._lock:
                self._error = str(e)
            return None
        else:
            with self._lock:
                self._result = result
                self._error = None
                self._last_updated = datetime.now(timezone.utc)
                self.scheduler.load(result.boards)
        finally:
            with self._lock:
                self._loading = False

        logger.info(
            f"Display data replaced: boards={len(result.boards)} cards={result.total_cards()}"
        )
        return result

    def select_boards(self, board_ids: List[Any]) -> List[int]:
        """Persist a board selection and refetch with it"""
        stored = self.store.save(self.instance_id, board_ids)
        self.refresh()
        return stored

    def clear_selection(self) -> bool:
        """Drop the persisted selection and refetch"""
        cleared = self.store.clear(self.instance_id)
        self.refresh()
        return cleared

    def get_selection(self) -> Optional[List[int]]:
        return self.store.load(self.instance_id)

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    def start_background_refresh(
        self,
        interval_seconds: Optional[int] = None,
        run_now: bool = False,
    ) -> None:
        """
        Refresh silently on an interval until shutdown().

        Args:
            interval_seconds: Refresh interval (defaults to settings)
            run_now: Also run the first refresh immediately, in the background
        """
        interval = interval_seconds or self.settings.refresh_interval_seconds
        job_kwargs: Dict[str, Any] = {}
        if run_now:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        with self._lock:
            if self._background is None:
                self._background = BackgroundScheduler(timezone=timezone.utc)
            self._background.add_job(
                func=self.refresh,
                kwargs={"show_loading": False},
                trigger=IntervalTrigger(seconds=interval),
                id=REFRESH_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                **job_kwargs,
            )
            if not self._background.running:
                self._background.start()
        logger.info(f"Background refresh every {interval}s")

    def shutdown(self) -> None:
        """Stop background refresh and all rotation timers"""
        with self._lock:
            if self._background is not None and self._background.running:
                self._background.shutdown(wait=False)
            self._background = None
            self.scheduler.stop()

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get_aggregate_result(self) -> Optional[AggregateResult]:
        with self._lock:
            return self._result

    def get_rotation_state(self) -> RotationState:
        with self._lock:
            return self.scheduler.state()

    def get_display_tasks(
        self,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[DisplayTask]:
        """Top tasks of the board currently on screen"""
        return self.get_display_snapshot(limit, now)[1]

    def get_display_snapshot(
        self,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[RotationState, List[DisplayTask]]:
        """
        Rotation state and the top tasks of its current board.

        Both come from one scheduler snapshot, so the tasks always belong
        to state.current_board even while timers are firing.
        """
        if limit is None:
            limit = self.settings.max_tasks_per_board
        with self._lock:
            state = self.scheduler.state()
        tasks = top_tasks(state.current_board, limit, now or local_now(), self.settings)
        return state, tasks

    def get_status(self) -> DisplayStatus:
        with self._lock:
            return DisplayStatus(
                loading=self._loading,
                error=self._error,
                last_updated=self._last_updated,
                has_data=self._result is not None,
            )
