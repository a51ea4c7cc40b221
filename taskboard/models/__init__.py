# Models package — import all models here so Alembic can discover them.

from taskboard.models.user import User  # noqa: F401
from taskboard.models.workspace import Workspace, WorkspaceMember  # noqa: F401
from taskboard.models.board import Board, BoardMember  # noqa: F401
from taskboard.models.kanban import BoardList, Card  # noqa: F401
from taskboard.models.comment import Comment  # noqa: F401
from taskboard.models.activity import Activity  # noqa: F401
