"""
Deck task API endpoints.

Direct, uncached access to Nextcloud Deck: the aggregated task view plus
passthroughs for boards, stacks and cards. Every Deck failure becomes an
HTTP 503 with a structured ErrorResponse body.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from backend.dependencies import get_aggregator, get_config, get_deck_client
from backend.schemas import (
    AggregateResponse,
    BoardDetailResponse,
    BoardListResponse,
    BoardSummary,
    CardListResponse,
    CardResponse,
    DeckHealthData,
    DeckHealthResponse,
    ErrorResponse,
    StackListResponse,
    StackSummary,
    TasksResponse,
)
from foyer.core.config import Config, parse_board_ids
from foyer.core.models import UNTITLED_BOARD, Card
from foyer.deck.aggregator import DeckAggregator
from foyer.deck.client import DeckClient, DeckError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])

UNAVAILABLE = {503: {"model": ErrorResponse}}


def deck_unavailable(
    config: Config,
    error: str,
    message: str,
    exc: Exception,
    **extra: Any,
) -> JSONResponse:
    """Build the 503 response; exception details only in debug mode."""
    body = ErrorResponse(
        error=error,
        message=message,
        details=str(exc) if config.get("debug") else None,
    ).model_dump()
    body.update(extra)
    return JSONResponse(status_code=503, content=body)


@router.get("/", response_model=TasksResponse, responses=UNAVAILABLE)
def get_tasks(
    boards: Optional[str] = Query(None, description="Comma-separated board ids"),
    aggregator: DeckAggregator = Depends(get_aggregator),
    config: Config = Depends(get_config),
):
    """
    Get the aggregated boards with all stacks and cards.

    Uses the explicit ?boards= filter, then the configured default
    boards, then every board visible to the Deck user.
    """
    board_ids = parse_board_ids(boards)
    using_defaults = False
    if not board_ids:
        board_ids = list(config.deck_settings().default_boards)
        using_defaults = bool(board_ids)

    logger.info(
        f"Task fetch request received: boards={board_ids or 'all'} "
        f"using_defaults={using_defaults}"
    )

    try:
        result = aggregator.fetch_all(board_ids)
    except DeckError as e:
        logger.error(f"Failed to fetch tasks: {e}")
        return deck_unavailable(
            config,
            "Failed to fetch tasks from Nextcloud Deck",
            "Unable to retrieve tasks. Please check your Nextcloud connection "
            "and Deck app installation.",
            e,
        )

    return TasksResponse(data=AggregateResponse(**result.to_dict()))


@router.get("/boards", response_model=BoardListResponse, responses=UNAVAILABLE)
def list_boards(
    client: DeckClient = Depends(get_deck_client),
    config: Config = Depends(get_config),
):
    """List boards, restricted to the default boards when configured."""
    logger.info("Board list request received")
    try:
        raw_boards = client.list_boards()
    except DeckError as e:
        logger.error(f"Failed to fetch boards: {e}")
        return deck_unavailable(
            config,
            "Failed to fetch boards from Nextcloud Deck",
            "Unable to retrieve boards. Please check your Nextcloud connection "
            "and Deck app installation.",
            e,
        )

    boards = [_board_summary(b) for b in raw_boards if isinstance(b, dict) and b.get("id") is not None]

    allowed = config.deck_settings().default_boards
    if allowed:
        boards = [b for b in boards if b.id in allowed]
        logger.info(
            f"Filtered boards by default config: allowed={list(allowed)} "
            f"total={len(raw_boards)} filtered={len(boards)}"
        )

    return BoardListResponse(data=boards, count=len(boards))


@router.get("/health", response_model=DeckHealthResponse, responses=UNAVAILABLE)
def deck_health(
    client: DeckClient = Depends(get_deck_client),
    config: Config = Depends(get_config),
):
    """Check the Deck connection by listing boards."""
    status = client.test_connection()
    timestamp = datetime.now(timezone.utc).isoformat()

    if not status.get("connected"):
        body = ErrorResponse(
            error="Nextcloud Deck connection failed",
            message="Unable to connect to Nextcloud Deck API",
            details=status.get("error"),
        ).model_dump()
        body.update({"status": "unhealthy", "timestamp": timestamp})
        return JSONResponse(status_code=503, content=body)

    return DeckHealthResponse(
        data=DeckHealthData(
            boards_count=status.get("boards_count", 0),
            boards=status.get("boards", []),
        ),
        timestamp=timestamp,
    )


@router.get("/boards/{board_id}", response_model=BoardDetailResponse, responses=UNAVAILABLE)
def get_board(
    board_id: int,
    client: DeckClient = Depends(get_deck_client),
    config: Config = Depends(get_config),
):
    """Get one complete board as returned by Deck."""
    logger.info(f"Complete board request received: board={board_id}")
    try:
        data = client.get_board_complete(board_id)
    except DeckError as e:
        logger.error(f"Failed to fetch complete board {board_id}: {e}")
        return deck_unavailable(
            config,
            "Failed to fetch board from Nextcloud Deck",
            "Unable to retrieve complete board data.",
            e,
            board_id=board_id,
        )

    return BoardDetailResponse(data=data, board_id=board_id)


@router.get(
    "/boards/{board_id}/stacks",
    response_model=StackListResponse,
    responses=UNAVAILABLE,
)
def list_stacks(
    board_id: int,
    client: DeckClient = Depends(get_deck_client),
    config: Config = Depends(get_config),
):
    """List the stacks of one board."""
    logger.info(f"Stack list request received: board={board_id}")
    try:
        raw_stacks = client.list_stacks(board_id)
    except DeckError as e:
        logger.error(f"Failed to fetch stacks for board {board_id}: {e}")
        return deck_unavailable(
            config,
            "Failed to fetch stacks from Nextcloud Deck",
            "Unable to retrieve stacks for the specified board.",
            e,
            board_id=board_id,
        )

    stacks = [
        StackSummary(
            id=int(s["id"]),
            title=str(s.get("title") or ""),
            boardId=s.get("boardId"),
            order=int(s.get("order") or 0),
            archived=bool(s.get("archived") or False),
        )
        for s in raw_stacks
        if isinstance(s, dict) and s.get("id") is not None
    ]
    return StackListResponse(data=stacks, count=len(stacks), board_id=board_id)


@router.get(
    "/boards/{board_id}/stacks/{stack_id}/cards",
    response_model=CardListResponse,
    responses=UNAVAILABLE,
)
def list_cards(
    board_id: int,
    stack_id: int,
    client: DeckClient = Depends(get_deck_client),
    config: Config = Depends(get_config),
):
    """List the cards of one stack, normalized."""
    logger.info(f"Cards list request received: board={board_id} stack={stack_id}")
    try:
        raw_cards = client.list_cards(board_id, stack_id)
    except DeckError as e:
        logger.error(f"Failed to fetch cards for board {board_id} stack {stack_id}: {e}")
        return deck_unavailable(
            config,
            "Failed to fetch cards from Nextcloud Deck",
            "Unable to retrieve cards for the specified stack.",
            e,
            board_id=board_id,
            stack_id=stack_id,
        )

    cards: List[CardResponse] = []
    for raw in raw_cards:
        if not isinstance(raw, dict):
            continue
        try:
            card = Card.from_dict(raw)
        except (ValueError, TypeError) as e:
            logger.warning(f"Skipping malformed card in stack {stack_id}: {e}")
            continue
        cards.append(CardResponse(**card.to_dict()))

    return CardListResponse(
        data=cards,
        count=len(cards),
        board_id=board_id,
        stack_id=stack_id,
    )


def _board_summary(raw: Dict[str, Any]) -> BoardSummary:
    permissions = raw.get("permissions")
    return BoardSummary(
        id=int(raw["id"]),
        title=raw.get("title") or UNTITLED_BOARD,
        color=raw.get("color"),
        archived=bool(raw.get("archived") or False),
        permissions=permissions if isinstance(permissions, dict) else {},
        users=raw.get("users") if isinstance(raw.get("users"), list) else [],
        acl=raw.get("acl") if isinstance(raw.get("acl"), list) else [],
    )
