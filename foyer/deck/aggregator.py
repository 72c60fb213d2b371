"""
Board aggregation for the Foyer Board Display.

Turns the remote board/stack/card hierarchy into a normalized
AggregateResult. Each board is fetched through an ordered chain of
strategies:

    complete board (+ per-stack card fill-in)
        -> stacks listing + per-stack cards
            -> dropped with a warning

Failures below the board level degrade to empty card lists; a board only
disappears when every strategy fails. Only a failure to list boards (when
no ids were given) aborts the whole fetch.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from foyer.core.config import Config
from foyer.core.models import AggregateResult, Board, Card, Stack, UNTITLED_BOARD
from foyer.deck.client import DeckClient, DeckError

logger = logging.getLogger(__name__)

# Payload shape errors raised while normalizing a remote response
MALFORMED_ERRORS = (ValueError, TypeError, KeyError, AttributeError)


class FetchStatus(str, Enum):
    """Outcome of one board fetch attempt"""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class BoardFetch:
    """Result of fetching one board through one or more strategies."""
    board_id: int
    status: FetchStatus
    board: Optional[Board] = None
    strategy: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status != FetchStatus.FAILED and self.board is not None


class DeckAggregator:
    """
    Central data aggregation for the board display.

    Queries the Deck API board by board and combines everything that was
    retrievable into a single AggregateResult.
    """

    def __init__(
        self,
        client: DeckClient,
        config: Optional[Config] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize aggregator.

        Args:
            client: Deck API client
            config: Configuration (creates default if not provided)
            max_workers: Boards fetched in parallel (defaults to config)
        """
        self.client = client
        self.config = config if config else Config()
        if max_workers is None:
            max_workers = self.config.display_settings().max_workers
        self.max_workers = max(1, max_workers)

        self._strategies: List[Tuple[str, Callable[[int, Dict[str, Any]], BoardFetch]]] = [
            ("complete", self._fetch_complete),
            ("stacks", self._fetch_by_stacks),
        ]

    def fetch_all(self, board_ids: Optional[Iterable[int]] = None) -> AggregateResult:
        """
        Aggregate all requested boards.

        Main entry point for a refresh cycle.

        Args:
            board_ids: Boards to fetch; empty/None means every visible board

        Returns:
            AggregateResult with the boards that could be retrieved

        Raises:
            DeckError: if listing boards fails when no ids were given
        """
        ids = list(dict.fromkeys(int(b) for b in (board_ids or [])))
        summaries: Dict[int, Dict[str, Any]] = {}

        logger.info(
            f"Starting aggregated board fetch: requested={ids or 'all'}"
        )

        if not ids:
            # Fatal for this refresh; callers keep their previous result
            listed = self.client.list_boards()
            for entry in listed:
                if not isinstance(entry, dict) or entry.get("id") is None:
                    continue
                try:
                    board_id = int(entry["id"])
                except (TypeError, ValueError):
                    continue
                summaries[board_id] = entry
                ids.append(board_id)
            logger.info(f"Fetching from all available boards: {len(ids)}")

        outcomes = self._run(ids, summaries)

        boards = []
        warnings: List[str] = []
        for outcome in outcomes:
            warnings.extend(outcome.warnings)
            if outcome.ok:
                boards.append(outcome.board)

        result = AggregateResult(
            boards=tuple(boards),
            fetched_at=datetime.now(timezone.utc),
            warnings=tuple(warnings),
        )

        logger.info(
            f"Aggregated board fetch complete: boards={len(result.boards)}/{len(ids)} "
            f"cards={result.total_cards()} warnings={len(warnings)}"
        )
        return result

    def _run(self, ids: List[int], summaries: Dict[int, Dict[str, Any]]) -> List[BoardFetch]:
        """Fetch boards, in parallel when allowed; output keeps input order"""
        if self.max_workers <= 1 or len(ids) <= 1:
            return [self.fetch_board(board_id, summaries.get(board_id)) for board_id in ids]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(ids))) as executor:
            return list(executor.map(
                lambda board_id: self.fetch_board(board_id, summaries.get(board_id)),
                ids,
            ))

    def fetch_board(self, board_id: int, summary: Optional[Dict[str, Any]] = None) -> BoardFetch:
        """
        Fetch one board, trying each strategy in order.

        Args:
            board_id: Board to fetch
            summary: Board listing entry, used for metadata in fallbacks

        Returns:
            First non-failed BoardFetch, or a FAILED one carrying every warning
        """
        summary = summary or {}
        warnings: List[str] = []

        for name, strategy in self._strategies:
            outcome = strategy(board_id, summary)
            warnings.extend(outcome.warnings)
            if outcome.ok:
                logger.info(
                    f"Board {board_id} fetched via '{name}' strategy: "
                    f"status={outcome.status.value} stacks={len(outcome.board.stacks)} "
                    f"cards={outcome.board.total_cards()}"
                )
                return BoardFetch(
                    board_id=board_id,
                    status=outcome.status,
                    board=outcome.board,
                    strategy=name,
                    warnings=tuple(warnings),
                )

        message = f"Board {board_id} dropped: all fetch strategies failed"
        logger.warning(message)
        warnings.append(message)
        return BoardFetch(board_id=board_id, status=FetchStatus.FAILED, warnings=tuple(warnings))

    def _fetch_complete(self, board_id: int, summary: Dict[str, Any]) -> BoardFetch:
        """Strategy A: one complete-board call, filling in missing cards per stack"""
        try:
            data = self.client.get_board_complete(board_id)
        except DeckError as e:
            message = f"Complete fetch failed for board {board_id}, trying fallback: {e}"
            logger.warning(message)
            return BoardFetch(board_id, FetchStatus.FAILED, warnings=(message,))

        raw_stacks = data.get("stacks")
        if not isinstance(raw_stacks, list):
            message = f"Complete fetch for board {board_id} returned no stack list, trying fallback"
            logger.warning(message)
            return BoardFetch(board_id, FetchStatus.FAILED, warnings=(message,))

        warnings: List[str] = []
        stacks = []
        for raw_stack in raw_stacks:
            stack, stack_warnings = self._build_stack(board_id, raw_stack, raw_stack_cards(raw_stack))
            warnings.extend(stack_warnings)
            if stack is not None:
                stacks.append(stack)

        try:
            resolved_id = int(data.get("id", board_id))
        except (TypeError, ValueError):
            resolved_id = board_id

        board = Board(
            id=resolved_id,
            title=data.get("title") or summary.get("title") or UNTITLED_BOARD,
            color=data.get("color") or summary.get("color"),
            stacks=tuple(stacks),
        )
        status = FetchStatus.PARTIAL if warnings else FetchStatus.SUCCESS
        return BoardFetch(board_id, status, board=board, warnings=tuple(warnings))

    def _fetch_by_stacks(self, board_id: int, summary: Dict[str, Any]) -> BoardFetch:
        """Strategy B: list stacks, then fetch cards for every stack"""
        try:
            raw_stacks = self.client.list_stacks(board_id)
        except DeckError as e:
            message = f"Stack listing failed for board {board_id}: {e}"
            logger.warning(message)
            return BoardFetch(board_id, FetchStatus.FAILED, warnings=(message,))

        warnings: List[str] = []
        stacks = []
        for raw_stack in raw_stacks:
            # Stack listings never embed cards reliably; always fetch them
            stack, stack_warnings = self._build_stack(board_id, raw_stack, None)
            warnings.extend(stack_warnings)
            if stack is not None:
                stacks.append(stack)

        board = Board(
            id=board_id,
            title=summary.get("title") or UNTITLED_BOARD,
            color=summary.get("color"),
            stacks=tuple(stacks),
        )
        status = FetchStatus.PARTIAL if warnings else FetchStatus.SUCCESS
        return BoardFetch(board_id, status, board=board, warnings=tuple(warnings))

    def _build_stack(
        self,
        board_id: int,
        raw_stack: Any,
        embedded_cards: Optional[List[Any]],
    ) -> Tuple[Optional[Stack], List[str]]:
        """
        Normalize one stack, fetching its cards when none are embedded.

        Returns:
            (Stack or None if the stack entry itself is unusable, warnings)
        """
        if not isinstance(raw_stack, dict) or raw_stack.get("id") is None:
            message = f"Skipping malformed stack entry on board {board_id}"
            logger.warning(message)
            return None, [message]

        try:
            stack = Stack.from_dict(raw_stack)
        except MALFORMED_ERRORS as e:
            message = f"Skipping malformed stack entry on board {board_id}: {e}"
            logger.warning(message)
            return None, [message]

        warnings: List[str] = []
        raw_cards = embedded_cards
        if not raw_cards:
            try:
                raw_cards = self.client.list_cards(board_id, stack.id)
            except DeckError as e:
                message = (
                    f"Failed to fetch cards for board {board_id} stack {stack.id}, "
                    f"keeping it empty: {e}"
                )
                logger.warning(message)
                warnings.append(message)
                raw_cards = []

        cards, card_warnings = self._normalize_cards(board_id, stack.id, raw_cards)
        warnings.extend(card_warnings)
        return stack.with_cards(cards), warnings

    def _normalize_cards(
        self,
        board_id: int,
        stack_id: int,
        raw_cards: Iterable[Any],
    ) -> Tuple[List[Card], List[str]]:
        cards: List[Card] = []
        warnings: List[str] = []
        for raw in raw_cards:
            if not isinstance(raw, dict):
                warnings.append(f"Skipping non-object card on board {board_id} stack {stack_id}")
                continue
            try:
                cards.append(Card.from_dict(raw))
            except MALFORMED_ERRORS as e:
                warnings.append(
                    f"Skipping malformed card on board {board_id} stack {stack_id}: {e}"
                )
        for message in warnings:
            logger.warning(message)
        return cards, warnings


def raw_stack_cards(raw_stack: Any) -> Optional[List[Any]]:
    """Cards embedded in a stack payload, if any"""
    if not isinstance(raw_stack, dict):
        return None
    cards = raw_stack.get("cards")
    return cards if isinstance(cards, list) else None
