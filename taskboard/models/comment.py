"""Card comment model."""

import uuid

from taskboard.extensions import db


class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    card_id = db.Column(
        db.String(36),
        db.ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    text = db.Column(db.String(1000), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    card = db.relationship("Card", back_populates="comments")
    author = db.relationship("User", foreign_keys=[author_id])

    def __repr__(self):
        return f"<Comment card={self.card_id}>"
