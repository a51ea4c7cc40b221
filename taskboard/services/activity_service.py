"""Activity log — append-only, board-scoped history of user-visible changes.

`record()` flushes but does NOT commit; it is always called inside the
mutation's own transaction so the record and the change commit together.
"""

from taskboard.extensions import db
from taskboard.models.activity import Activity


def record(board_id, actor_id, activity_type, description, card_id=None,
           list_id=None, comment_id=None, data=None):
    """Append one activity row for a board."""
    if activity_type not in Activity.TYPES:
        raise ValueError(f"Unknown activity type '{activity_type}'")
    activity = Activity(
        board_id=board_id,
        actor_id=actor_id,
        type=activity_type,
        description=description[:500],
        card_id=card_id,
        list_id=list_id,
        comment_id=comment_id,
        data=data or {},
    )
    db.session.add(activity)
    db.session.flush()
    return activity


def list_for_board(board_id, activity_filter="all", limit=50, page=1):
    """Newest-first page of a board's activity, optionally filtered by kind.

    Args:
        activity_filter: "all" or one of Activity.FILTERS keys. Unknown
            filters fall back to "all".
    """
    query = Activity.query.filter_by(board_id=board_id)
    types = Activity.FILTERS.get(activity_filter)
    if types:
        query = query.filter(Activity.type.in_(types))
    limit = max(1, min(int(limit), 200))
    page = max(1, int(page))
    return (
        query.order_by(Activity.created_at.desc(), Activity.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )


def list_for_card(card_id, limit=20):
    return (
        Activity.query
        .filter_by(card_id=card_id)
        .order_by(Activity.created_at.desc())
        .limit(limit)
        .all()
    )
