"""
Pydantic schemas for API response validation.

Card, stack and board schemas keep Deck's camelCase keys (duedate,
assignedUsers, createdAt) so display clients can consume either the
raw passthrough endpoints or the aggregated ones with the same parser.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# =============================================================================
# Base Response Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """Error body returned with HTTP 503 when Deck is unreachable."""
    success: bool = False
    error: str
    message: str
    details: Optional[str] = None


class HealthResponse(BaseModel):
    """Service health (does not contact Deck)."""
    status: str
    has_data: bool
    last_updated: Optional[str] = None
    error: Optional[str] = None


# =============================================================================
# Deck Data Schemas
# =============================================================================

class AssignedUserResponse(BaseModel):
    uid: str
    display_name: str


class CardResponse(BaseModel):
    """Normalized card."""
    id: int
    title: str
    description: str = ""
    duedate: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    assignedUsers: List[AssignedUserResponse] = Field(default_factory=list)
    createdAt: Optional[str] = None
    lastModified: Optional[str] = None
    archived: bool = False
    done: bool = False
    order: int = 0
    type: str = "plain"


class StackResponse(BaseModel):
    id: int
    title: str
    order: int = 0
    cards: List[CardResponse] = Field(default_factory=list)


class BoardResponse(BaseModel):
    id: int
    title: str
    color: Optional[str] = None
    stacks: List[StackResponse] = Field(default_factory=list)
    total_cards: int = 0


class AggregateResponse(BaseModel):
    """Every board retrieved in one refresh."""
    boards: List[BoardResponse] = Field(default_factory=list)
    total_cards: int = 0
    fetched_at: str
    warnings: List[str] = Field(default_factory=list)


class TasksResponse(BaseModel):
    success: bool = True
    data: AggregateResponse
    message: str = "Tasks fetched successfully"


class BoardSummary(BaseModel):
    """Entry of the board listing."""
    id: int
    title: str
    color: Optional[str] = None
    archived: bool = False
    permissions: Dict[str, Any] = Field(default_factory=dict)
    users: List[Any] = Field(default_factory=list)
    acl: List[Any] = Field(default_factory=list)


class BoardListResponse(BaseModel):
    success: bool = True
    data: List[BoardSummary]
    message: str = "Boards fetched successfully"
    count: int


class BoardDetailResponse(BaseModel):
    """Raw complete-board payload as returned by Deck."""
    success: bool = True
    data: Dict[str, Any]
    message: str = "Board data fetched successfully"
    board_id: int


class StackSummary(BaseModel):
    id: int
    title: str
    boardId: Optional[int] = None
    order: int = 0
    archived: bool = False


class StackListResponse(BaseModel):
    success: bool = True
    data: List[StackSummary]
    message: str = "Stacks fetched successfully"
    count: int
    board_id: int


class CardListResponse(BaseModel):
    success: bool = True
    data: List[CardResponse]
    message: str = "Cards fetched successfully"
    count: int
    board_id: int
    stack_id: int


class DeckBoardRef(BaseModel):
    id: Optional[int] = None
    title: str


class DeckHealthData(BaseModel):
    boards_count: int
    boards: List[DeckBoardRef] = Field(default_factory=list)


class DeckHealthResponse(BaseModel):
    success: bool = True
    status: str = "healthy"
    message: str = "Nextcloud Deck connection is working"
    data: DeckHealthData
    timestamp: str


# =============================================================================
# Display Schemas
# =============================================================================

class DisplayTaskResponse(CardResponse):
    """Card on the board currently shown, with its render hints."""
    boardId: int
    boardTitle: str
    stackId: int
    stackTitle: str
    priority: str
    priority_color: str
    due_text: Optional[str] = None
    due_color: Optional[str] = None


class DisplayTasksResponse(BaseModel):
    board_id: Optional[int] = None
    board_title: Optional[str] = None
    tasks: List[DisplayTaskResponse] = Field(default_factory=list)
    count: int = 0


class RotationResponse(BaseModel):
    """Snapshot of the board rotation."""
    phase: str
    index: int
    total: int
    progress: float = Field(ge=0, le=100)
    transitioning: bool
    duration_ms: int
    urgent_count: int
    current_board_id: Optional[int] = None
    current_board_title: Optional[str] = None


class DisplayStatusResponse(BaseModel):
    loading: bool
    error: Optional[str] = None
    last_updated: Optional[str] = None
    has_data: bool


class DisplayResultResponse(BaseModel):
    """Current aggregate result; data is null before the first refresh."""
    data: Optional[AggregateResponse] = None
    status: DisplayStatusResponse


class RefreshResponse(BaseModel):
    success: bool
    message: str
    status: DisplayStatusResponse
    rotation: RotationResponse


class SelectionRequest(BaseModel):
    """Request body for storing a board selection."""
    board_ids: List[Any] = Field(..., description="Board ids to display")


class SelectionResponse(BaseModel):
    instance_id: str
    board_ids: Optional[List[int]] = None
    effective_board_ids: List[int] = Field(default_factory=list)
