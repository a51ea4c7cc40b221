"""Comment service — card discussion threads."""

import logging

from taskboard.extensions import db
from taskboard.models.comment import Comment
from taskboard.realtime import broadcaster
from taskboard.realtime.events import CommentAdded
from taskboard.services import access, activity_service, store
from taskboard.services.serializers import comment_dict

logger = logging.getLogger(__name__)


def add_comment(actor, card_id, text, origin=None):
    """Post a comment on a card and notify the card's board."""
    card = store.get_card(card_id)
    board = store.get_board(card.board_id)
    access.require_write(board, actor)

    comment = store.add(Comment(card_id=card.id, author_id=actor.id, text=text))
    activity_service.record(
        board.id, actor.id, "comment_added", f'commented on "{card.title}"',
        card_id=card.id, list_id=card.list_id, comment_id=comment.id,
        data={"text": text[:100]},
    )
    db.session.commit()
    logger.info(f"Comment {comment.id} added to card {card.id} by {actor.id}")

    broadcaster.publish(CommentAdded(
        **broadcaster.envelope(board.id, actor, origin),
        comment=comment_dict(comment), card_id=card.id,
    ))
    return comment


def list_comments(user, card_id):
    """Comments on a card, oldest first."""
    card = store.get_card(card_id)
    access.require_read(store.get_board(card.board_id), user)
    return card.comments.order_by(Comment.created_at, Comment.id).all()
