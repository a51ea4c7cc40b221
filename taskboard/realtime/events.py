"""Mutation events broadcast on a board channel.

One pydantic model per event type; `name` is the wire event name and the
union tag. Every variant carries the board it belongs to, who caused it and
which socket session originated it (so that session can be skipped during
fan-out and ignored by its own client).

On the wire, field names are camelCase: `CardMoved.to_list_id` travels as
`toListId`. `parse_event(name, payload)` is the inverse of `to_payload()`
and rejects payloads whose fields are missing or of the wrong type.
"""

from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel


class MalformedEvent(ValueError):
    pass


class BoardEvent(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    name: ClassVar[str] = ""

    board_id: str
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    origin_session: Optional[str] = None

    def to_payload(self):
        return self.model_dump(by_alias=True)

    @classmethod
    def from_payload(cls, payload):
        if not isinstance(payload, dict):
            raise MalformedEvent(f"{cls.name} payload must be an object")
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise MalformedEvent(f"{cls.name}: invalid or missing {fields}") from e


# ─── Card events ─────────────────────────────────────────────────

class CardMoved(BoardEvent):
    name: ClassVar[str] = "card-moved"

    card_id: str
    from_list_id: str
    to_list_id: str
    new_position: float
    # {card_id: position} for every card in the destination list when the
    # move forced a rebalance; None otherwise.
    rebalanced: Optional[Dict[str, float]] = None


class CardCreated(BoardEvent):
    name: ClassVar[str] = "card-created"

    card: Dict[str, Any]
    # Set when the card arrived by an index move from another board that
    # re-spaced the destination list.
    rebalanced: Optional[Dict[str, float]] = None


class CardUpdated(BoardEvent):
    name: ClassVar[str] = "card-updated"

    card_id: str
    updates: Dict[str, Any] = {}


class CardDeleted(BoardEvent):
    name: ClassVar[str] = "card-deleted"

    card_id: str
    list_id: str


# ─── List events ─────────────────────────────────────────────────

class ListMoved(BoardEvent):
    name: ClassVar[str] = "list-moved"

    list_id: str
    new_position: float
    rebalanced: Optional[Dict[str, float]] = None


class ListCreated(BoardEvent):
    name: ClassVar[str] = "list-created"

    list: Dict[str, Any]


class ListUpdated(BoardEvent):
    name: ClassVar[str] = "list-updated"

    list_id: str
    updates: Dict[str, Any] = {}


class ListArchived(BoardEvent):
    name: ClassVar[str] = "list-archived"

    list_id: str


class ListDeleted(BoardEvent):
    name: ClassVar[str] = "list-deleted"

    list_id: str


# ─── Comments & presence ─────────────────────────────────────────

class CommentAdded(BoardEvent):
    name: ClassVar[str] = "comment-added"

    comment: Dict[str, Any]
    card_id: str


class UserJoinedBoard(BoardEvent):
    name: ClassVar[str] = "user-joined-board"

    user_id: str
    user_name: Optional[str] = None
    session_id: Optional[str] = None


class UserLeftBoard(BoardEvent):
    name: ClassVar[str] = "user-left-board"

    user_id: str
    user_name: Optional[str] = None
    session_id: Optional[str] = None


EVENT_TYPES = {
    cls.name: cls
    for cls in (
        CardMoved,
        CardCreated,
        CardUpdated,
        CardDeleted,
        ListMoved,
        ListCreated,
        ListUpdated,
        ListArchived,
        ListDeleted,
        CommentAdded,
        UserJoinedBoard,
        UserLeftBoard,
    )
}


def parse_event(name, payload):
    """Build the typed event for wire `name` from its payload dict.

    Raises:
        MalformedEvent: If the name is unknown, or a field is missing or
            has the wrong type.
    """
    cls = EVENT_TYPES.get(name)
    if cls is None:
        raise MalformedEvent(f"Unknown event type '{name}'")
    return cls.from_payload(payload)
