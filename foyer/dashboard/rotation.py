"""
Board rotation for the Foyer Board Display.

Cycles through the aggregated boards, showing each one for a duration
scaled by how many urgent tasks it holds.

States:
    IDLE          - zero or one board, nothing rotates
    DISPLAYING    - showing boards[index], progress climbing 0 -> 100
    TRANSITIONING - short fade before moving to the next board

Two jobs are live while DISPLAYING: the one-shot duration timer and the
repeating progress tick. Every (re-)entry into DISPLAYING bumps a generation
counter; callbacks carrying an older generation are ignored, so a job that
fires after a reset can never advance the index.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from foyer.core.config import DisplaySettings
from foyer.core.models import Board
from foyer.dashboard.classifier import DEFAULT_SETTINGS, local_now
from foyer.dashboard.sorter import urgent_task_count

logger = logging.getLogger(__name__)

# Urgent-task count -> share of the base display time
DURATION_FRACTIONS = {
    4: 0.9,
    3: 0.8,
    2: 0.7,
    1: 0.6,
    0: 0.5,
}


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


# (seconds, callback) -> handle; used for both one-shot and repeating timers
TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


class JobHandle:
    """Cancellable reference to one APScheduler job"""

    def __init__(self, job):
        self._job = job

    def cancel(self) -> None:
        try:
            self._job.remove()
        except JobLookupError:
            # One-shot jobs are dropped by the scheduler once they have run
            logger.debug(f"Rotation job {self._job.id} already finished")


class RotationJobs:
    """
    Rotation timers backed by a BackgroundScheduler.

    once() schedules a DateTrigger job, every() an IntervalTrigger job.
    The scheduler thread starts on first use and is torn down by shutdown().
    """

    def __init__(self):
        self._scheduler: Optional[BackgroundScheduler] = None
        self._lock = threading.Lock()

    def _running(self) -> BackgroundScheduler:
        with self._lock:
            if self._scheduler is None:
                self._scheduler = BackgroundScheduler(timezone=timezone.utc)
                self._scheduler.start()
            return self._scheduler

    def once(self, delay: float, callback: Callable[[], None]) -> JobHandle:
        run_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
        job = self._running().add_job(
            func=callback,
            trigger=DateTrigger(run_date=run_at),
            misfire_grace_time=None,
        )
        return JobHandle(job)

    def every(self, interval: float, callback: Callable[[], None]) -> JobHandle:
        job = self._running().add_job(
            func=callback,
            trigger=IntervalTrigger(seconds=interval),
            max_instances=1,
            coalesce=True,
        )
        return JobHandle(job)

    def shutdown(self) -> None:
        with self._lock:
            if self._scheduler is not None and self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None


def calculate_display_duration(urgent_count: int, base_ms: int = 40000) -> int:
    """
    Calculate how long a board stays on screen.

    Scoring:
        - 5 or more urgent tasks: 100% of base
        - 4: 90%, 3: 80%, 2: 70%, 1: 60%
        - none: 50%

    Args:
        urgent_count: Urgent tasks on the board
        base_ms: Base display time in milliseconds

    Returns:
        Display duration in milliseconds
    """
    if urgent_count >= 5:
        return int(base_ms)
    fraction = DURATION_FRACTIONS.get(max(0, urgent_count), 0.5)
    return int(round(base_ms * fraction))


class RotationPhase(str, Enum):
    IDLE = "idle"
    DISPLAYING = "displaying"
    TRANSITIONING = "transitioning"


@dataclass(frozen=True)
class RotationState:
    """Observable snapshot of the scheduler"""
    phase: RotationPhase
    index: int
    total: int
    progress: float
    transitioning: bool
    duration_ms: int
    urgent_count: int
    current_board: Optional[Board] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "index": self.index,
            "total": self.total,
            "progress": self.progress,
            "transitioning": self.transitioning,
            "duration_ms": self.duration_ms,
            "urgent_count": self.urgent_count,
            "current_board_id": self.current_board.id if self.current_board else None,
            "current_board_title": self.current_board.title if self.current_board else None,
        }


class RotationScheduler:
    """
    Timed, cancellable rotation through boards.

    All state changes happen under one lock; timers only ever act on the
    generation they were started for.
    """

    def __init__(
        self,
        settings: Optional[DisplaySettings] = None,
        timer_factory: Optional[TimerFactory] = None,
        interval_factory: Optional[TimerFactory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize scheduler in IDLE with no boards.

        Args:
            settings: Base duration, tick and transition times
            timer_factory: Starts a one-shot timer (defaults to an APScheduler date job)
            interval_factory: Starts a repeating timer (defaults to an APScheduler interval job)
            clock: Current-time provider for urgency counting
        """
        self.settings = settings or DEFAULT_SETTINGS
        self._jobs: Optional[RotationJobs] = None
        if timer_factory is None or interval_factory is None:
            self._jobs = RotationJobs()
        self._timer_factory = timer_factory or self._jobs.once
        self._interval_factory = interval_factory or self._jobs.every
        self._clock = clock or local_now
        self._lock = threading.RLock()

        self._boards: Tuple[Board, ...] = ()
        self._generation = 0
        # Holds the duration timer while displaying, the fade timer while transitioning
        self._phase_timer: Optional[TimerHandle] = None
        self._tick_timer: Optional[TimerHandle] = None

        self._phase = RotationPhase.IDLE
        self._index = 0
        self._progress = 0.0
        self._duration_ms = 0
        self._urgent_count = 0
        self._progress_step = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self, boards: Sequence[Board]) -> None:
        """Accept a new board list and restart from the first board"""
        with self._lock:
            self._boards = tuple(boards)
            self._restart()

    def reset(self) -> None:
        """Restart from the first board; a no-op state-wise when idle"""
        with self._lock:
            self._restart()

    def stop(self) -> None:
        """Cancel all timers and go idle (display teardown)"""
        with self._lock:
            self._generation += 1
            self._cancel_timers()
            self._phase = RotationPhase.IDLE
            self._index = 0
            self._progress = 0.0
            if self._jobs is not None:
                self._jobs.shutdown()

    def state(self) -> RotationState:
        with self._lock:
            return RotationState(
                phase=self._phase,
                index=self._index,
                total=len(self._boards),
                progress=self._progress,
                transitioning=self._phase == RotationPhase.TRANSITIONING,
                duration_ms=self._duration_ms,
                urgent_count=self._urgent_count,
                current_board=self._current_board(),
            )

    def current_board(self) -> Optional[Board]:
        with self._lock:
            return self._current_board()

    @property
    def boards(self) -> Tuple[Board, ...]:
        return self._boards

    # ------------------------------------------------------------------
    # State transitions (callers hold the lock)
    # ------------------------------------------------------------------

    def _current_board(self) -> Optional[Board]:
        if not self._boards:
            return None
        return self._boards[self._index % len(self._boards)]

    def _cancel_timers(self) -> None:
        for timer in (self._phase_timer, self._tick_timer):
            if timer is not None:
                timer.cancel()
        self._phase_timer = None
        self._tick_timer = None

    def _restart(self) -> None:
        self._generation += 1
        self._cancel_timers()
        self._index = 0
        self._progress = 0.0

        if len(self._boards) <= 1:
            self._phase = RotationPhase.IDLE
            board = self._current_board()
            self._urgent_count = urgent_task_count(board, self._clock(), self.settings)
            self._duration_ms = 0
            return

        self._enter_displaying(0)

    def _enter_displaying(self, index: int) -> None:
        self._generation += 1
        self._cancel_timers()
        generation = self._generation

        self._phase = RotationPhase.DISPLAYING
        self._index = index
        self._progress = 0.0

        board = self._current_board()
        self._urgent_count = urgent_task_count(board, self._clock(), self.settings)
        self._duration_ms = calculate_display_duration(
            self._urgent_count, self.settings.rotation_base_ms
        )
        tick_ms = max(1, self.settings.progress_tick_ms)
        self._progress_step = 100.0 * tick_ms / max(1, self._duration_ms)

        logger.debug(
            f"Displaying board {index + 1}/{len(self._boards)} "
            f"({board.title if board else '-'}): urgent={self._urgent_count} "
            f"duration_ms={self._duration_ms}"
        )

        self._phase_timer = self._timer_factory(
            self._duration_ms / 1000.0, lambda: self._on_duration_elapsed(generation)
        )
        self._tick_timer = self._interval_factory(
            tick_ms / 1000.0, lambda: self._on_tick(generation)
        )

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    def _on_tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._phase != RotationPhase.DISPLAYING:
                return
            self._progress = min(100.0, self._progress + self._progress_step)
            if self._progress >= 100.0 and self._tick_timer is not None:
                self._tick_timer.cancel()
                self._tick_timer = None

    def _on_duration_elapsed(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._phase != RotationPhase.DISPLAYING:
                return
            if self._tick_timer is not None:
                self._tick_timer.cancel()
                self._tick_timer = None
            self._progress = 100.0
            self._phase = RotationPhase.TRANSITIONING
            self._phase_timer = self._timer_factory(
                self.settings.transition_ms / 1000.0,
                lambda: self._on_transition_done(generation),
            )

    def _on_transition_done(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._phase != RotationPhase.TRANSITIONING:
                return
            self._phase_timer = None
            next_index = (self._index + 1) % len(self._boards)
            self._enter_displaying(next_index)
