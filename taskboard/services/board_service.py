"""Board service — boards, their members, labels, card search and activity feed."""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_

from taskboard.errors import NotFound, ValidationFailed
from taskboard.extensions import db
from taskboard.models.board import Board, BoardMember
from taskboard.models.kanban import BoardList, Card
from taskboard.models.user import User
from taskboard.services import access, activity_service, positioning, store
from taskboard.services.serializers import (
    activity_dict,
    board_dict,
    card_dict,
    list_dict,
    member_dict,
)

logger = logging.getLogger(__name__)

DEFAULT_LISTS = ["To Do", "In Progress", "Done"]
MEMBER_ROLES = ["admin", "member", "viewer"]


def list_boards(user):
    """Open boards the user owns or is a member of, newest first."""
    return (
        Board.query
        .outerjoin(BoardMember, BoardMember.board_id == Board.id)
        .filter(or_(Board.owner_id == user.id, BoardMember.user_id == user.id))
        .filter(Board.closed == False)  # noqa: E712
        .distinct()
        .order_by(Board.created_at.desc())
        .all()
    )


def create_board(actor, workspace_id, title, description=None,
                 visibility="workspace", background=None):
    """Create a board in a workspace, seeded with the default lists.

    The creator becomes the owner and gets an "owner" membership row.

    Raises:
        NotFound: If the workspace does not exist.
        Forbidden: If the actor is not a member of the workspace.
    """
    workspace = store.get_workspace(workspace_id)
    access.require_workspace_member(workspace, actor)

    board = store.add(Board(
        title=title,
        description=description,
        workspace_id=workspace.id,
        owner_id=actor.id,
        visibility=visibility or "workspace",
        background=background or "#0079bf",
    ))
    db.session.add(BoardMember(board_id=board.id, user_id=actor.id, role="owner"))
    for list_title, position in zip(DEFAULT_LISTS, positioning.rebalance(len(DEFAULT_LISTS))):
        db.session.add(BoardList(board_id=board.id, title=list_title, position=position))
    db.session.flush()

    activity_service.record(board.id, actor.id, "board_created", f'created board "{title}"')
    db.session.commit()
    logger.info(f"Board {board.id} created in workspace {workspace.id} by {actor.id}")
    return board


def get_board_detail(user, board_id):
    """Board with its live lists and cards, each ordered by position."""
    board = store.get_board(board_id)
    access.require_read(board, user)

    lists = [
        list_dict(board_list, cards=store.live_cards(board_list.id))
        for board_list in store.live_lists(board.id)
    ]
    members = [member_dict(m) for m in board.members.order_by(BoardMember.joined_at)]
    return board_dict(board, lists=lists, members=members)


def add_member(actor, board_id, user_id, role="member"):
    board = store.get_board(board_id)
    access.require_write(board, actor)

    if role not in MEMBER_ROLES:
        raise ValidationFailed([{
            "field": "role",
            "message": f"Invalid role '{role}'. Must be one of: {', '.join(MEMBER_ROLES)}",
        }])
    user = db.session.get(User, user_id) if user_id else None
    if user is None:
        raise NotFound("User", user_id)
    if access.is_member(board, user):
        raise ValidationFailed([{"field": "userId", "message": "User is already a member"}])

    member = store.add(BoardMember(board_id=board.id, user_id=user.id, role=role))
    activity_service.record(
        board.id, actor.id, "member_added",
        f"added {user.display_name} to the board as {role}",
        data={"userId": user.id, "role": role},
    )
    db.session.commit()
    logger.info(f"User {user.id} added to board {board.id} as {role}")
    return member


def list_activities(user, board_id, activity_filter="all", limit=50, page=1):
    board = store.get_board(board_id)
    access.require_read(board, user)
    return [
        activity_dict(a)
        for a in activity_service.list_for_board(board.id, activity_filter, limit, page)
    ]


def rebalance_board(board_id):
    """Re-space every live list and card on a board to GAP multiples.

    Maintenance operation behind `flask rebalance-board`; no events are
    published, connected clients pick the new positions up on their next
    fetch.

    Returns:
        Number of entities re-positioned.
    """
    board = store.get_board(board_id)
    lists = store.list_siblings(board.id)
    store.apply_list_positions(
        dict(zip([lid for lid, _ in lists], positioning.rebalance(len(lists))))
    )
    total = len(lists)
    for list_id, _ in lists:
        cards = store.card_siblings(list_id)
        store.apply_card_positions(
            dict(zip([cid for cid, _ in cards], positioning.rebalance(len(cards))))
        )
        total += len(cards)
    db.session.commit()
    logger.info(f"Rebalanced {total} entities on board {board.id}")
    return total



# ─── Labels ──────────────────────────────────────────────────────

def add_label(actor, board_id, name, color):
    """Define a label on a board. Cards reference it by the returned id."""
    board = store.get_board(board_id)
    access.require_write(board, actor)

    label = {"id": str(uuid.uuid4()), "name": name, "color": color}
    # Reassign so the JSON column is flagged dirty
    board.labels = [*(board.labels or []), label]
    activity_service.record(
        board.id, actor.id, "label_created", f'created label "{name}"',
        data={"labelId": label["id"], "color": color},
    )
    db.session.commit()
    logger.info(f"Label {label['id']} added to board {board.id} by {actor.id}")
    return label


# ─── Search ──────────────────────────────────────────────────────

DUE_FILTERS = ["overdue", "today", "week"]
SEARCH_LIMIT = 50


def _due_window(due, now):
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if due == "overdue":
        return None, today
    if due == "today":
        return today, today + timedelta(days=1)
    return today, today + timedelta(days=7)


def search_cards(user, board_id, query=None, labels=None, assignees=None,
                 due=None, now=None):
    """Live cards on a board matching every given filter, by position.

    Args:
        query: Case-insensitive substring of the title or description.
        labels: Label ids; a card matches if it carries any of them.
        assignees: User ids; a card matches if any of them is assigned.
        due: "overdue" (before today), "today", or "week" (next 7 days).
        now: Reference time for the due filter, UTC now by default.
    """
    board = store.get_board(board_id)
    access.require_read(board, user)

    cards = Card.query.filter(Card.board_id == board.id, Card.archived == False)  # noqa: E712
    if query:
        pattern = f"%{query}%"
        cards = cards.filter(or_(Card.title.ilike(pattern), Card.description.ilike(pattern)))
    if assignees:
        cards = cards.filter(Card.assignees.any(User.id.in_(assignees)))
    if due:
        start, end = _due_window(due, now or datetime.now(timezone.utc))
        cards = cards.filter(Card.due_date.isnot(None), Card.due_date < end)
        if start is not None:
            cards = cards.filter(Card.due_date >= start)

    cards = cards.order_by(Card.position, Card.created_at)
    if labels:
        wanted = set(labels)
        matches = [c for c in cards if wanted.intersection(c.labels or [])]
    else:
        matches = cards.limit(SEARCH_LIMIT).all()
    return [card_dict(c) for c in matches[:SEARCH_LIMIT]]
