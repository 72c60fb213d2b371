"""
Display API endpoints.

Read side of the DisplayService: the cached aggregate, the rotation
snapshot, the top tasks of the board on screen, and the persisted board
selection of this display instance.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend.dependencies import get_display_service
from backend.schemas import (
    AggregateResponse,
    DisplayResultResponse,
    DisplayStatusResponse,
    DisplayTaskResponse,
    DisplayTasksResponse,
    RefreshResponse,
    RotationResponse,
    SelectionRequest,
    SelectionResponse,
)
from foyer.dashboard.classifier import Classifier, local_now
from foyer.dashboard.service import DisplayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/display", tags=["display"])


def _status(service: DisplayService) -> DisplayStatusResponse:
    return DisplayStatusResponse(**service.get_status().to_dict())


def _rotation(service: DisplayService) -> RotationResponse:
    return RotationResponse(**service.get_rotation_state().to_dict())


@router.get("/result", response_model=DisplayResultResponse)
async def get_result(service: DisplayService = Depends(get_display_service)):
    """Get the current aggregate result (null before the first refresh)."""
    result = service.get_aggregate_result()
    data = AggregateResponse(**result.to_dict()) if result is not None else None
    return DisplayResultResponse(data=data, status=_status(service))


@router.get("/rotation", response_model=RotationResponse)
async def get_rotation(service: DisplayService = Depends(get_display_service)):
    """Get the rotation snapshot: board index, progress and transition flag."""
    return _rotation(service)


@router.get("/tasks", response_model=DisplayTasksResponse)
async def get_display_tasks(
    limit: Optional[int] = Query(None, ge=0, le=50),
    service: DisplayService = Depends(get_display_service),
):
    """
    Get the top tasks of the board currently on screen.

    Each task carries its priority level and due-date text with color
    hints, so clients only have to render.
    """
    now = local_now()
    state, tasks = service.get_display_snapshot(limit=limit, now=now)
    classifier = Classifier(service.settings)

    items = []
    for task in tasks:
        priority = classifier.classify(task.card, now)
        due = classifier.describe_due_date(task.due_date, now)
        items.append(DisplayTaskResponse(
            **task.to_dict(),
            priority=priority.level.value,
            priority_color=priority.color,
            due_text=due.text if due else None,
            due_color=due.color if due else None,
        ))

    board = state.current_board
    return DisplayTasksResponse(
        board_id=board.id if board else None,
        board_title=board.title if board else None,
        tasks=items,
        count=len(items),
    )


@router.get("/status", response_model=DisplayStatusResponse)
async def get_status(service: DisplayService = Depends(get_display_service)):
    """Get loading/error state and the last successful update time."""
    return _status(service)


@router.post("/refresh", response_model=RefreshResponse)
def refresh(service: DisplayService = Depends(get_display_service)):
    """
    Refetch all boards now.

    A failed refresh keeps the previous data; success is false and the
    error is reported in the status.
    """
    result = service.refresh()
    if result is None:
        message = "Refresh failed, showing previous data"
    else:
        message = f"Refreshed {len(result.boards)} boards"
    return RefreshResponse(
        success=result is not None,
        message=message,
        status=_status(service),
        rotation=_rotation(service),
    )


@router.get("/selection", response_model=SelectionResponse)
async def get_selection(service: DisplayService = Depends(get_display_service)):
    """Get the stored board selection and the ids that will be fetched."""
    return SelectionResponse(
        instance_id=service.instance_id,
        board_ids=service.get_selection(),
        effective_board_ids=service.resolve_board_ids(),
    )


@router.put("/selection", response_model=SelectionResponse)
def put_selection(
    request: SelectionRequest,
    service: DisplayService = Depends(get_display_service),
):
    """Store a board selection and refetch with it."""
    stored = service.select_boards(request.board_ids)
    logger.info(f"Board selection updated via API: {stored}")
    return SelectionResponse(
        instance_id=service.instance_id,
        board_ids=stored,
        effective_board_ids=service.resolve_board_ids(),
    )


@router.delete("/selection", response_model=SelectionResponse)
def delete_selection(service: DisplayService = Depends(get_display_service)):
    """Drop the stored selection; default boards apply again."""
    service.clear_selection()
    return SelectionResponse(
        instance_id=service.instance_id,
        board_ids=None,
        effective_board_ids=service.resolve_board_ids(),
    )
