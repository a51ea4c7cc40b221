"""Activity model.

Append-only log of every user-visible change on a board, shown in the
board's activity feed. Rows are never updated or deleted by the app.
"""

import uuid

from taskboard.extensions import db


class Activity(db.Model):
    __tablename__ = "activities"

    TYPES = [
        "card_created",
        "card_updated",
        "card_moved",
        "card_deleted",
        "comment_added",
        "list_created",
        "list_updated",
        "list_moved",
        "list_archived",
        "list_deleted",
        "board_created",
        "member_added",
        "label_created",
    ]

    # Feed filters -> activity types
    FILTERS = {
        "comments": ["comment_added"],
        "moves": ["card_moved", "list_moved"],
        "cards": ["card_created", "card_updated", "card_deleted"],
        "lists": ["list_created", "list_updated", "list_moved", "list_archived", "list_deleted"],
    }

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    board_id = db.Column(
        db.String(36),
        db.ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
    )
    actor_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    type = db.Column(db.String(50), nullable=False)  # e.g. "card_moved"
    description = db.Column(db.String(500), nullable=False)
    # Plain ids, not foreign keys: the referenced card or list may be gone.
    card_id = db.Column(db.String(36), nullable=True)
    list_id = db.Column(db.String(36), nullable=True)
    comment_id = db.Column(db.String(36), nullable=True)
    data = db.Column(db.JSON, default=dict)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.Index("ix_activities_board_created", "board_id", "created_at"),
    )

    # --- Relationships ---
    board = db.relationship("Board", back_populates="activities")
    actor = db.relationship("User", back_populates="activities")

    def __repr__(self):
        return f"<Activity {self.type}>"
