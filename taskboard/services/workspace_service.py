"""Workspace service — the containers boards live in."""

import logging

from sqlalchemy import or_

from taskboard.extensions import db
from taskboard.models.board import Board
from taskboard.models.workspace import Workspace, WorkspaceMember
from taskboard.services import access, store
from taskboard.services.serializers import board_dict, user_dict, workspace_dict

logger = logging.getLogger(__name__)


def create_workspace(actor, name, description=None):
    """Create a workspace owned by `actor`, with an owner membership row."""
    workspace = Workspace(name=name, description=description, owner_id=actor.id)
    db.session.add(workspace)
    db.session.flush()
    db.session.add(WorkspaceMember(user_id=actor.id, workspace_id=workspace.id, role="owner"))
    db.session.commit()
    logger.info(f"Workspace {workspace.id} created by {actor.id}")
    return workspace


def list_workspaces(user):
    return (
        Workspace.query
        .outerjoin(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .filter(or_(Workspace.owner_id == user.id, WorkspaceMember.user_id == user.id))
        .distinct()
        .order_by(Workspace.created_at)
        .all()
    )


def get_workspace_detail(user, workspace_id):
    """Workspace with its owner, members and the open boards `user` can read.

    Raises:
        NotFound: If the workspace does not exist.
        Forbidden: If the user is neither owner nor member.
    """
    workspace = store.get_workspace(workspace_id)
    access.require_workspace_member(workspace, user)

    data = workspace_dict(workspace)
    data["owner"] = user_dict(workspace.owner)
    data["members"] = [
        {"userId": m.user_id, "role": m.role, "user": user_dict(m.user)}
        for m in workspace.members.order_by(WorkspaceMember.created_at)
    ]
    data["boards"] = [
        board_dict(b)
        for b in workspace.boards.filter_by(closed=False).order_by(Board.created_at)
        if access.can_read(b, user)
    ]
    return data
