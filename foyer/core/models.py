"""
Data models for the Foyer Board Display
Defines the normalized board, stack and card records built from Deck payloads.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple

from dateutil import parser as date_parser


UNTITLED_BOARD = "Untitled Board"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a Deck timestamp into an aware datetime.

    Deck sends due dates as ISO strings and creation times as unix seconds.
    Naive values are interpreted in the system's local time.

    Args:
        value: ISO string, unix timestamp, datetime or None

    Returns:
        Aware datetime, or None if the value is missing or unparseable
    """
    if value is None or value == "" or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        if value <= 0:
            return None
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value)
        except (ValueError, OverflowError):
            try:
                parsed = date_parser.parse(value)
            except (ValueError, OverflowError):
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


@dataclass(frozen=True)
class Label:
    """Card label; its title drives keyword-based priority"""
    id: Optional[int] = None
    title: str = ""
    color: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'Label':
        if isinstance(data, str):
            return cls(title=data)
        if not isinstance(data, dict):
            return cls()
        return cls(
            id=data.get('id'),
            title=_as_str(data.get('title')),
            color=data.get('color'),
        )


@dataclass(frozen=True)
class AssignedUser:
    """User assignment on a card (Deck nests the user under 'participant')"""
    uid: str = ""
    display_name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> 'AssignedUser':
        if isinstance(data, str):
            return cls(uid=data, display_name=data)
        if not isinstance(data, dict):
            return cls()
        user = data.get('participant') or data
        if not isinstance(user, dict):
            user = {'uid': _as_str(user)}
        uid = _as_str(user.get('uid') or user.get('primaryKey'))
        return cls(
            uid=uid,
            display_name=_as_str(user.get('displayname') or user.get('displayName'), uid),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"uid": self.uid, "display_name": self.display_name}


@dataclass(frozen=True)
class Card:
    """A single task on a Deck board"""
    id: int
    title: str = ""
    description: str = ""
    due_date: Optional[datetime] = None
    labels: Tuple[Label, ...] = ()
    assigned_users: Tuple[AssignedUser, ...] = ()
    created_at: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    archived: bool = False
    done: bool = False
    order: int = 0
    type: str = "plain"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Card':
        """
        Create Card from a raw Deck card payload.

        Missing optional fields fall back to empty/false/None. A missing id
        is the only unrecoverable case and raises ValueError.
        """
        if 'id' not in data or data.get('id') is None:
            raise ValueError("card payload has no id")

        return cls(
            id=_as_int(data.get('id')),
            title=_as_str(data.get('title')),
            description=_as_str(data.get('description')),
            due_date=parse_timestamp(data.get('duedate')),
            labels=tuple(Label.from_dict(lbl) for lbl in _as_list(data.get('labels'))),
            assigned_users=tuple(
                AssignedUser.from_dict(u) for u in _as_list(data.get('assignedUsers'))
            ),
            created_at=parse_timestamp(data.get('createdAt')),
            last_modified=parse_timestamp(data.get('lastModified')),
            archived=bool(data.get('archived') or False),
            # Deck reports completion as a timestamp, older versions as a bool
            done=bool(data.get('done') or False),
            order=_as_int(data.get('order')),
            type=_as_str(data.get('type'), 'plain'),
        )

    def is_active(self) -> bool:
        """Check if the card is neither archived nor done"""
        return not self.archived and not self.done

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "duedate": self.due_date.isoformat() if self.due_date else None,
            "labels": [lbl.title for lbl in self.labels],
            "assignedUsers": [u.to_dict() for u in self.assigned_users],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "lastModified": self.last_modified.isoformat() if self.last_modified else None,
            "archived": self.archived,
            "done": self.done,
            "order": self.order,
            "type": self.type,
        }


@dataclass(frozen=True)
class Stack:
    """Ordered column of cards within a board"""
    id: int
    title: str = ""
    order: int = 0
    cards: Tuple[Card, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Stack':
        """Create Stack from a raw payload without its cards"""
        return cls(
            id=_as_int(data.get('id')),
            title=_as_str(data.get('title')),
            order=_as_int(data.get('order')),
        )

    def with_cards(self, cards: List[Card]) -> 'Stack':
        return Stack(id=self.id, title=self.title, order=self.order, cards=tuple(cards))

    def card_count(self) -> int:
        return len(self.cards)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "order": self.order,
            "cards": [c.to_dict() for c in self.cards],
        }


@dataclass(frozen=True)
class Board:
    """Named collection of stacks"""
    id: int
    title: str = UNTITLED_BOARD
    color: Optional[str] = None
    stacks: Tuple[Stack, ...] = ()

    def with_stacks(self, stacks: List[Stack]) -> 'Board':
        return Board(id=self.id, title=self.title, color=self.color, stacks=tuple(stacks))

    def total_cards(self) -> int:
        """Total number of cards across all stacks"""
        return sum(stack.card_count() for stack in self.stacks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "color": self.color,
            "stacks": [s.to_dict() for s in self.stacks],
            "total_cards": self.total_cards(),
        }


@dataclass(frozen=True)
class AggregateResult:
    """Snapshot of every board retrievable in one refresh cycle"""
    boards: Tuple[Board, ...] = ()
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    warnings: Tuple[str, ...] = ()

    def total_cards(self) -> int:
        return sum(board.total_cards() for board in self.boards)

    def is_empty(self) -> bool:
        return not self.boards

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boards": [b.to_dict() for b in self.boards],
            "total_cards": self.total_cards(),
            "fetched_at": self.fetched_at.isoformat(),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class DisplayTask:
    """A card flattened out of its board/stack for sorting and rendering"""
    card: Card
    board_id: int
    board_title: str
    stack_id: int
    stack_title: str

    @property
    def id(self) -> int:
        return self.card.id

    @property
    def title(self) -> str:
        return self.card.title

    @property
    def due_date(self) -> Optional[datetime]:
        return self.card.due_date

    @property
    def created_at(self) -> Optional[datetime]:
        return self.card.created_at

    @property
    def assigned_count(self) -> int:
        return len(self.card.assigned_users)

    def to_dict(self) -> Dict[str, Any]:
        data = self.card.to_dict()
        data.update({
            "boardId": self.board_id,
            "boardTitle": self.board_title,
            "stackId": self.stack_id,
            "stackTitle": self.stack_title,
        })
        return data
