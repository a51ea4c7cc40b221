"""Persistence gateway — atomic reads/updates of ordered entities.

Thin layer over the SQLAlchemy session that the mutation services use for
everything touching positions or parent membership. Lookups raise NotFound
instead of returning None. Writes flush but do NOT commit; the calling
service commits once per mutation so a move plus any rebalance it triggered
land in one transaction.

Concurrent writers are not arbitrated here: last write wins.
"""

from datetime import datetime, timezone

from taskboard.errors import NotFound
from taskboard.extensions import db
from taskboard.models.board import Board
from taskboard.models.comment import Comment
from taskboard.models.kanban import BoardList, Card
from taskboard.models.user import User
from taskboard.models.workspace import Workspace


def _get(model, entity_id, label):
    entity = db.session.get(model, entity_id) if entity_id else None
    if entity is None:
        raise NotFound(label, entity_id)
    return entity


def get_workspace(workspace_id):
    return _get(Workspace, workspace_id, "Workspace")


def get_board(board_id):
    return _get(Board, board_id, "Board")


def get_list(list_id):
    return _get(BoardList, list_id, "List")


def get_card(card_id):
    return _get(Card, card_id, "Card")


def get_comment(comment_id):
    return _get(Comment, comment_id, "Comment")


def get_user(user_id):
    return _get(User, user_id, "User")


# ─── Sibling queries ─────────────────────────────────────────────

def card_siblings(list_id, exclude=None):
    """(id, position) of the list's live cards, ascending by position."""
    query = (
        db.session.query(Card.id, Card.position)
        .filter(Card.list_id == list_id, Card.archived == False)  # noqa: E712
    )
    if exclude is not None:
        query = query.filter(Card.id != exclude)
    return [(row.id, row.position) for row in query.order_by(Card.position, Card.created_at)]


def list_siblings(board_id, exclude=None):
    """(id, position) of the board's live lists, ascending by position."""
    query = (
        db.session.query(BoardList.id, BoardList.position)
        .filter(BoardList.board_id == board_id, BoardList.archived == False)  # noqa: E712
    )
    if exclude is not None:
        query = query.filter(BoardList.id != exclude)
    return [(row.id, row.position) for row in query.order_by(BoardList.position, BoardList.created_at)]


def live_lists(board_id):
    return (
        BoardList.query
        .filter_by(board_id=board_id, archived=False)
        .order_by(BoardList.position)
        .all()
    )


def live_cards(list_id):
    return (
        Card.query
        .filter_by(list_id=list_id, archived=False)
        .order_by(Card.position)
        .all()
    )


def count_cards(list_id):
    return Card.query.filter_by(list_id=list_id).count()


# ─── Atomic writes ───────────────────────────────────────────────

def move_card(card_id, new_list_id, new_position):
    """Re-parent and re-position a card as one UPDATE.

    The list reference, the denormalized board reference and the position
    are assigned together and flushed in a single statement, so no reader
    can observe the card in both lists or in neither.

    Returns:
        The updated Card.

    Raises:
        NotFound: If the card or the destination list does not exist.
    """
    card = get_card(card_id)
    target = get_list(new_list_id)

    card.list_id = target.id
    card.board_id = target.board_id
    card.position = float(new_position)
    card.updated_at = datetime.now(timezone.utc)
    db.session.flush()
    return card


def move_list(list_id, new_position):
    """Atomic position update for a list. Returns the updated BoardList."""
    board_list = get_list(list_id)
    board_list.position = float(new_position)
    board_list.updated_at = datetime.now(timezone.utc)
    db.session.flush()
    return board_list


def apply_card_positions(positions):
    """Bulk-write {card_id: position}; used to persist a rebalance."""
    now = datetime.now(timezone.utc)
    for card_id, position in positions.items():
        card = get_card(card_id)
        card.position = float(position)
        card.updated_at = now
    db.session.flush()


def apply_list_positions(positions):
    """Bulk-write {list_id: position}; used to persist a rebalance."""
    now = datetime.now(timezone.utc)
    for list_id, position in positions.items():
        board_list = get_list(list_id)
        board_list.position = float(position)
        board_list.updated_at = now
    db.session.flush()


def add(entity):
    db.session.add(entity)
    db.session.flush()
    return entity


def delete(entity):
    db.session.delete(entity)
    db.session.flush()
