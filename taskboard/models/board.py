"""Board models.

- Board: owns an ordered sequence of lists and a membership set.
- BoardMember: join table carrying the member's role on the board.
"""

import uuid

from taskboard.extensions import db


class Board(db.Model):
    __tablename__ = "boards"

    VISIBILITIES = ["private", "workspace", "public"]
    ROLES = ["owner", "admin", "member", "viewer"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    workspace_id = db.Column(
        db.String(36), db.ForeignKey("workspaces.id"), nullable=False
    )
    owner_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    visibility = db.Column(db.String(20), nullable=False, default="workspace")
    background = db.Column(db.String(20), default="#0079bf")
    # [{"id", "name", "color"}]; cards reference labels by id
    labels = db.Column(db.JSON, default=list)
    closed = db.Column(db.Boolean, default=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    workspace = db.relationship("Workspace", back_populates="boards")
    owner = db.relationship("User", foreign_keys=[owner_id])
    members = db.relationship(
        "BoardMember",
        back_populates="board",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    lists = db.relationship(
        "BoardList",
        back_populates="board",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="BoardList.position",
    )
    activities = db.relationship(
        "Activity", back_populates="board", lazy="dynamic"
    )

    def __repr__(self):
        return f"<Board {self.title}>"


class BoardMember(db.Model):
    __tablename__ = "board_members"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    board_id = db.Column(
        db.String(36),
        db.ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    role = db.Column(db.String(20), nullable=False, default="member")
    joined_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint("board_id", "user_id", name="uq_board_user"),
    )

    # --- Relationships ---
    board = db.relationship("Board", back_populates="members")
    user = db.relationship("User", back_populates="board_memberships")

    def __repr__(self):
        return f"<BoardMember user={self.user_id} board={self.board_id} role={self.role}>"
