"""List service — create, rename, move, archive, delete.

Same shape as the card service: authorize, write through the store, record
activity, commit, publish.
"""

import logging
from datetime import datetime, timezone

from taskboard.errors import ValidationFailed
from taskboard.extensions import db
from taskboard.models.kanban import BoardList
from taskboard.realtime import broadcaster
from taskboard.realtime.events import (
    ListArchived,
    ListCreated,
    ListDeleted,
    ListMoved,
    ListUpdated,
)
from taskboard.services import access, activity_service, positioning, store
from taskboard.services.serializers import list_dict

logger = logging.getLogger(__name__)


def create_list(actor, board_id, title, position=None, origin=None):
    """Add a list to a board, appended after the last live list by default."""
    board = store.get_board(board_id)
    access.require_write(board, actor)

    if position is None:
        position = positioning.append_position(
            [p for _, p in store.list_siblings(board.id)]
        )
    elif not positioning.is_valid_position(position):
        raise ValidationFailed([{
            "field": "position",
            "message": "Position must be a finite number within range",
        }])

    board_list = store.add(BoardList(board_id=board.id, title=title, position=float(position)))
    activity_service.record(
        board.id, actor.id, "list_created", f'added list "{title}"',
        list_id=board_list.id,
    )
    db.session.commit()
    logger.info(f"List {board_list.id} created on board {board.id} by {actor.id}")

    broadcaster.publish(ListCreated(
        **broadcaster.envelope(board.id, actor, origin),
        list=list_dict(board_list, cards=[]),
    ))
    return board_list


def update_list(actor, list_id, title, origin=None):
    board_list = store.get_list(list_id)
    board = store.get_board(board_list.board_id)
    access.require_write(board, actor)

    old_title = board_list.title
    board_list.title = title
    board_list.updated_at = datetime.now(timezone.utc)
    db.session.flush()
    activity_service.record(
        board.id, actor.id, "list_updated",
        f'renamed list "{old_title}" to "{title}"',
        list_id=board_list.id,
    )
    db.session.commit()

    broadcaster.publish(ListUpdated(
        **broadcaster.envelope(board.id, actor, origin),
        list_id=board_list.id, updates={"title": title},
    ))
    return board_list


def move_list(actor, list_id, position=None, index=None, origin=None):
    """Reorder a list within its board.

    Takes either a trusted explicit `position` or a target `index`; see
    card_service.move_card for the contract.

    Returns:
        (board_list, rebalanced) where rebalanced is {list_id: position} for
        every live list on the board if a rebalance happened, else None.
    """
    board_list = store.get_list(list_id)
    board = store.get_board(board_list.board_id)
    access.require_write(board, actor)

    if position is None and index is None:
        raise ValidationFailed([{
            "field": "position",
            "message": "Position is required and must be a number",
        }])

    rebalanced = None
    siblings = store.list_siblings(board.id, exclude=board_list.id)
    if position is not None:
        if not positioning.is_valid_position(position):
            raise ValidationFailed([{
                "field": "position",
                "message": "Position must be a finite number within range",
            }])
        new_position = float(position)
        if any(p == new_position for _, p in siblings):
            logger.warning(
                f"List {board_list.id} moved onto an occupied position {new_position}"
            )
    else:
        index = min(index, len(siblings))
        placement = positioning.place([p for _, p in siblings], index)
        new_position = placement.position
        if placement.rebalanced:
            ids = [sid for sid, _ in siblings]
            ids.insert(index, board_list.id)
            rebalanced = dict(zip(ids, placement.rebalanced))
            store.apply_list_positions(
                {lid: pos for lid, pos in rebalanced.items() if lid != board_list.id}
            )
            logger.info(f"Rebalanced {len(ids)} lists on board {board.id}")

    board_list = store.move_list(board_list.id, new_position)
    activity_service.record(
        board.id, actor.id, "list_moved", f'moved list "{board_list.title}"',
        list_id=board_list.id, data={"position": new_position},
    )
    db.session.commit()

    broadcaster.publish(ListMoved(
        **broadcaster.envelope(board.id, actor, origin),
        list_id=board_list.id,
        new_position=new_position,
        rebalanced=rebalanced,
    ))
    return board_list, rebalanced


def archive_list(actor, list_id, origin=None):
    """Archive a list and every card in it. Archiving twice is a no-op."""
    board_list = store.get_list(list_id)
    board = store.get_board(board_list.board_id)
    access.require_write(board, actor)
    if board_list.archived:
        return board_list

    now = datetime.now(timezone.utc)
    board_list.archived = True
    board_list.updated_at = now
    for card in store.live_cards(board_list.id):
        card.archived = True
        card.updated_at = now
    db.session.flush()
    activity_service.record(
        board.id, actor.id, "list_archived", f'archived list "{board_list.title}"',
        list_id=board_list.id,
    )
    db.session.commit()
    logger.info(f"List {board_list.id} archived by {actor.id}")

    broadcaster.publish(ListArchived(
        **broadcaster.envelope(board.id, actor, origin), list_id=board_list.id,
    ))
    return board_list


def delete_list(actor, list_id, origin=None):
    """Remove a list: archived if it still holds cards, deleted otherwise.

    Returns:
        "archived" or "deleted".
    """
    board_list = store.get_list(list_id)
    board = store.get_board(board_list.board_id)
    access.require_write(board, actor)

    if store.count_cards(board_list.id) > 0:
        archive_list(actor, list_id, origin=origin)
        return "archived"

    title = board_list.title
    store.delete(board_list)
    activity_service.record(
        board.id, actor.id, "list_deleted", f'deleted list "{title}"', list_id=list_id,
    )
    db.session.commit()
    logger.info(f"List {list_id} deleted by {actor.id}")

    broadcaster.publish(ListDeleted(
        **broadcaster.envelope(board.id, actor, origin), list_id=list_id,
    ))
    return "deleted"
