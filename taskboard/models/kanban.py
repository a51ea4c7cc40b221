"""Kanban ordering models.

Lists (lanes) belong to a board, cards belong to a list and carry a
denormalized board reference. Both are ordered among their siblings by a
float `position` sort key (see services/positioning.py).
"""

import uuid

from taskboard.extensions import db


card_assignees = db.Table(
    "card_assignees",
    db.Column(
        "card_id",
        db.String(36),
        db.ForeignKey("cards.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "user_id", db.String(36), db.ForeignKey("users.id"), primary_key=True
    ),
)


class BoardList(db.Model):
    __tablename__ = "board_lists"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    board_id = db.Column(
        db.String(36),
        db.ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
    )
    title = db.Column(db.String(100), nullable=False)
    position = db.Column(db.Float, nullable=False, default=1024.0)
    archived = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.Index("ix_board_lists_board_position", "board_id", "position"),
    )

    board = db.relationship("Board", back_populates="lists")
    cards = db.relationship(
        "Card",
        back_populates="list",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="Card.position",
    )

    def __repr__(self):
        return f"<BoardList {self.title}>"


class Card(db.Model):
    __tablename__ = "cards"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    list_id = db.Column(
        db.String(36),
        db.ForeignKey("board_lists.id", ondelete="CASCADE"),
        nullable=False,
    )
    board_id = db.Column(
        db.String(36),
        db.ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    position = db.Column(db.Float, nullable=False, default=1024.0)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    # Ids of labels defined on the card's board
    labels = db.Column(db.JSON, default=list)
    archived = db.Column(db.Boolean, nullable=False, default=False)
    creator_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.Index("ix_cards_list_position", "list_id", "position"),
        db.Index("ix_cards_board_archived", "board_id", "archived"),
    )

    list = db.relationship("BoardList", back_populates="cards")
    creator = db.relationship("User", foreign_keys=[creator_id])
    assignees = db.relationship("User", secondary=card_assignees, order_by="User.name")
    comments = db.relationship(
        "Comment",
        back_populates="card",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )

    def __repr__(self):
        return f"<Card {self.title[:40]}>"
