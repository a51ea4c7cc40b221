"""Board authorization.

One rule for every write, whatever the entity: the principal must own the
board or hold a membership row on it. Visibility only widens READ access
(non-private boards are readable by any signed-in user); it never grants
writes.
"""

from taskboard.errors import Forbidden
from taskboard.models.board import BoardMember
from taskboard.models.workspace import WorkspaceMember


def _user_id(user):
    return user if isinstance(user, str) or user is None else user.id


def is_member(board, user):
    user_id = _user_id(user)
    if user_id is None:
        return False
    if board.owner_id == user_id:
        return True
    return (
        BoardMember.query
        .filter_by(board_id=board.id, user_id=user_id)
        .first()
        is not None
    )


def role_of(board, user):
    user_id = _user_id(user)
    if board.owner_id == user_id:
        return "owner"
    membership = BoardMember.query.filter_by(board_id=board.id, user_id=user_id).first()
    return membership.role if membership else None


def can_read(board, user):
    return board.visibility != "private" or is_member(board, user)


def require_write(board, user):
    """Raise Forbidden unless `user` owns or is a member of `board`."""
    if not is_member(board, user):
        raise Forbidden()


def require_read(board, user):
    if not can_read(board, user):
        raise Forbidden()


def require_workspace_member(workspace, user):
    user_id = _user_id(user)
    if workspace.owner_id == user_id:
        return
    membership = WorkspaceMember.query.filter_by(
        workspace_id=workspace.id, user_id=user_id
    ).first()
    if membership is None:
        raise Forbidden("Access denied to workspace")
