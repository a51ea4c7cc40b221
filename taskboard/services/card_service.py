"""Card service — create, update, move, delete.

Every function here is a complete mutation: authorize against the card's
board, write through the persistence gateway, append an activity record,
commit, then hand the resulting event to the broadcaster. Broadcasting
happens only after the commit succeeded, and at most once per mutation.

`origin` is the caller's socket session id (if any); that session is left
out of the fan-out because it has already applied the change locally.
"""

import logging
from datetime import datetime, timezone

from taskboard.errors import NotFound, ValidationFailed
from taskboard.extensions import db
from taskboard.models.kanban import Card
from taskboard.realtime import broadcaster
from taskboard.realtime.events import CardCreated, CardDeleted, CardMoved, CardUpdated
from taskboard.services import access, activity_service, positioning, store
from taskboard.services.serializers import activity_dict, card_dict

logger = logging.getLogger(__name__)

# Fields a plain card update may change, and their wire names.
UPDATABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "due_date": "dueDate",
    "completed": "completed",
    "labels": "labels",
    "assignees": "assignees",
}


def _require_position(position):
    if not positioning.is_valid_position(position):
        raise ValidationFailed([{
            "field": "position",
            "message": "Position must be a finite number within range",
        }])
    return float(position)


def _board_label_ids(board, label_ids):
    known = {label["id"] for label in board.labels or []}
    missing = [lid for lid in label_ids if lid not in known]
    if missing:
        raise ValidationFailed([{
            "field": "labels",
            "message": f"Unknown label(s) on this board: {', '.join(missing)}",
        }])
    return list(label_ids)


def _board_assignees(board, user_ids):
    users = []
    for user_id in user_ids:
        user = store.get_user(user_id)
        if not access.is_member(board, user):
            raise ValidationFailed([{
                "field": "assignees",
                "message": f"{user.display_name} is not a member of this board",
            }])
        users.append(user)
    return users


def _live_list(list_id):
    board_list = store.get_list(list_id)
    if board_list.archived:
        raise ValidationFailed([{"field": "listId", "message": "List is archived"}])
    return board_list


def create_card(actor, list_id, title, description=None, position=None, origin=None):
    """Create a card in a list.

    Without an explicit `position` the card is appended: last sibling + GAP.

    Returns:
        The created Card.

    Raises:
        NotFound: If the list does not exist.
        Forbidden: If the actor is not a member of the list's board.
        ValidationFailed: If the list is archived or the position invalid.
    """
    board_list = _live_list(list_id)
    board = store.get_board(board_list.board_id)
    access.require_write(board, actor)

    if position is None:
        position = positioning.append_position(
            [p for _, p in store.card_siblings(list_id)]
        )
    else:
        position = _require_position(position)

    card = store.add(Card(
        list_id=board_list.id,
        board_id=board.id,
        title=title,
        description=description or "",
        position=position,
        creator_id=actor.id,
    ))
    activity_service.record(
        board.id, actor.id, "card_created",
        f'added card "{title}" to "{board_list.title}"',
        card_id=card.id, list_id=board_list.id,
    )
    db.session.commit()
    logger.info(f"Card {card.id} created in list {list_id} by {actor.id}")

    broadcaster.publish(CardCreated(
        **broadcaster.envelope(board.id, actor, origin), card=card_dict(card),
    ))
    return card


def update_card(actor, card_id, updates, origin=None):
    """Apply field updates (title, description, due_date, completed,
    labels, assignees).

    `labels` is a list of label ids defined on the card's board and
    `assignees` a list of user ids who are members of it; both replace the
    current set. Position and list changes are not accepted here; use
    move_card.
    """
    card = store.get_card(card_id)
    board = store.get_board(card.board_id)
    access.require_write(board, actor)

    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationFailed([
            {"field": name, "message": f"Field '{name}' cannot be updated"}
            for name in sorted(unknown)
        ])

    changed = {}
    for name, value in updates.items():
        if name == "title" and not value:
            raise ValidationFailed([{"field": "title", "message": "Title is required"}])
        if name == "labels":
            value = _board_label_ids(board, value or [])
        elif name == "assignees":
            card.assignees = _board_assignees(board, value or [])
            changed["assignees"] = [u.id for u in card.assignees]
            continue
        setattr(card, name, value)
        changed[UPDATABLE_FIELDS[name]] = value.isoformat() if isinstance(value, datetime) else value

    if "completed" in updates:
        card.completed_at = datetime.now(timezone.utc) if updates["completed"] else None
        changed["completedAt"] = card.completed_at.isoformat() if card.completed_at else None

    card.updated_at = datetime.now(timezone.utc)
    db.session.flush()
    activity_service.record(
        board.id, actor.id, "card_updated", f'updated card "{card.title}"',
        card_id=card.id, list_id=card.list_id, data={"fields": sorted(updates)},
    )
    db.session.commit()

    broadcaster.publish(CardUpdated(
        **broadcaster.envelope(board.id, actor, origin),
        card_id=card.id, updates=changed,
    ))
    return card


def move_card(actor, card_id, list_id=None, position=None, index=None, origin=None):
    """Move a card within its list, to another list, or to another board.

    The destination is given either as an explicit `position` (computed by
    the client and persisted as-is after a type/range check) or as a target
    `index`, in which case the position is computed here from the
    destination's current siblings and any rebalance the engine asks for is
    written in the same transaction.

    Returns:
        (card, rebalanced) where rebalanced is {card_id: position} for the
        whole destination list if a rebalance happened, else None.

    Raises:
        NotFound: Card or destination list missing.
        Forbidden: Actor may not write to the source or destination board.
        ValidationFailed: Neither position nor index given, or bad values.
    """
    card = store.get_card(card_id)
    source_board = store.get_board(card.board_id)
    access.require_write(source_board, actor)

    from_list = store.get_list(card.list_id)
    target_list = _live_list(list_id or card.list_id)
    if target_list.board_id == source_board.id:
        target_board = source_board
    else:
        target_board = store.get_board(target_list.board_id)
        access.require_write(target_board, actor)

    if position is None and index is None:
        raise ValidationFailed([{
            "field": "position",
            "message": "Position is required and must be a number",
        }])

    rebalanced = None
    if position is not None:
        new_position = _require_position(position)
        siblings = store.card_siblings(target_list.id, exclude=card.id)
        if any(p == new_position for _, p in siblings):
            logger.warning(
                f"Card {card.id} moved onto an occupied position {new_position} "
                f"in list {target_list.id}"
            )
    else:
        siblings = store.card_siblings(target_list.id, exclude=card.id)
        index = min(index, len(siblings))
        placement = positioning.place([p for _, p in siblings], index)
        new_position = placement.position
        if placement.rebalanced:
            ids = [sid for sid, _ in siblings]
            ids.insert(index, card.id)
            rebalanced = dict(zip(ids, placement.rebalanced))
            store.apply_card_positions(
                {cid: pos for cid, pos in rebalanced.items() if cid != card.id}
            )
            logger.info(f"Rebalanced {len(ids)} cards in list {target_list.id}")

    card = store.move_card(card.id, target_list.id, new_position)
    if target_board is not source_board:
        # Labels and assignees are scoped to the destination board
        known = {label["id"] for label in target_board.labels or []}
        card.labels = [lid for lid in card.labels or [] if lid in known]
        card.assignees = [u for u in card.assignees if access.is_member(target_board, u)]
        db.session.flush()

    if from_list.id == target_list.id:
        description = f'moved card "{card.title}" within "{target_list.title}"'
    else:
        description = (
            f'moved card "{card.title}" from "{from_list.title}" to "{target_list.title}"'
        )
    data = {"fromListId": from_list.id, "toListId": target_list.id, "position": new_position}
    activity_service.record(
        source_board.id, actor.id, "card_moved", description,
        card_id=card.id, list_id=target_list.id, data=data,
    )
    if target_board is not source_board:
        activity_service.record(
            target_board.id, actor.id, "card_moved", description,
            card_id=card.id, list_id=target_list.id, data=data,
        )
    db.session.commit()
    logger.info(f"Card {card.id} moved {from_list.id} -> {target_list.id} @ {new_position}")

    if target_board is source_board:
        broadcaster.publish(CardMoved(
            **broadcaster.envelope(source_board.id, actor, origin),
            card_id=card.id,
            from_list_id=from_list.id,
            to_list_id=target_list.id,
            new_position=new_position,
            rebalanced=rebalanced,
        ))
    else:
        # Viewers of each board only know their own lists: the card leaves
        # one board and appears on the other.
        broadcaster.publish(
            CardDeleted(
                **broadcaster.envelope(source_board.id, actor, origin),
                card_id=card.id, list_id=from_list.id,
            ),
            CardCreated(
                **broadcaster.envelope(target_board.id, actor, origin),
                card=card_dict(card),
                rebalanced=rebalanced,
            ),
        )
    return card, rebalanced


def delete_card(actor, card_id, origin=None):
    """Hard-delete a card. Returns False if it was already gone."""
    try:
        card = store.get_card(card_id)
    except NotFound:
        return False
    board = store.get_board(card.board_id)
    access.require_write(board, actor)

    board_list = store.get_list(card.list_id)
    card_title, list_id = card.title, card.list_id
    store.delete(card)
    activity_service.record(
        board.id, actor.id, "card_deleted",
        f'deleted card "{card_title}" from "{board_list.title}"',
        card_id=card_id, list_id=list_id,
    )
    db.session.commit()
    logger.info(f"Card {card_id} deleted by {actor.id}")

    broadcaster.publish(CardDeleted(
        **broadcaster.envelope(board.id, actor, origin),
        card_id=card_id, list_id=list_id,
    ))
    return True


def get_card_detail(user, card_id):
    """A single card plus its recent activity."""
    card = store.get_card(card_id)
    access.require_read(store.get_board(card.board_id), user)
    data = card_dict(card)
    data["activities"] = [activity_dict(a) for a in activity_service.list_for_card(card.id)]
    return data


def list_card_activities(user, card_id, limit=20):
    """Newest-first activity for one card."""
    card = store.get_card(card_id)
    access.require_read(store.get_board(card.board_id), user)
    return [activity_dict(a) for a in activity_service.list_for_card(card.id, limit)]
