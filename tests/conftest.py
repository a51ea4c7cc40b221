"""Shared test fixtures for the taskboard test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, inline fan-out)
- db_session: clean database per test (tables created/dropped)
- client: Flask test client
- delivered: records every hub delivery as (session_id, event_name, payload)
- seed_data: owner, member and outsider users, a workspace, a shared board
  with three lists and cards A/B/C, and a private board

Requests are made outside any pushed app context so each one gets its own
context (and its own Flask-Login user). Tests that touch the database
directly wrap that part in `with app.app_context():`.
"""

import pytest
from werkzeug.security import generate_password_hash

from taskboard import create_app
from taskboard.extensions import db as _db
from taskboard.extensions import hub, socketio
from taskboard.models.board import Board, BoardMember
from taskboard.models.kanban import BoardList, Card
from taskboard.models.user import User
from taskboard.models.workspace import Workspace, WorkspaceMember
from taskboard.realtime.broadcaster import init_broadcaster
from taskboard.services import token_service


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after.

    The in-memory database lives on a single shared connection, so data
    survives between app contexts within a test.
    """
    with app.app_context():
        _db.create_all()
    yield _db.session
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(autouse=True)
def clean_hub(app):
    """Every test starts with no sessions and the real socket transport."""
    hub.clear()
    init_broadcaster(app)
    yield hub
    hub.clear()
    init_broadcaster(app)


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def delivered():
    """Swap the hub transport for a recorder."""
    sent = []
    hub.bind(lambda session_id, name, payload: sent.append((session_id, name, payload)))
    return sent


@pytest.fixture
def socket_client(app, client):
    """Factory for Socket.IO test clients authenticated with a token."""
    opened = []

    def _connect(token):
        sio = socketio.test_client(app, auth={"token": token}, flask_test_client=client)
        opened.append(sio)
        return sio

    yield _connect
    for sio in opened:
        if sio.is_connected():
            sio.disconnect()


def _make_user(email, name):
    user = User(email=email, name=name, password_hash=generate_password_hash("password123"))
    _db.session.add(user)
    _db.session.flush()
    return user


@pytest.fixture
def seed_data(app, db_session):
    """Seed users, a workspace, a shared board and a private board.

    Returns plain ids and API tokens so tests can use them from any context.
    """
    with app.app_context():
        # --- Users ---
        owner = _make_user("owner@taskboard.test", "Olivia Owner")
        member = _make_user("member@taskboard.test", "Max Member")
        outsider = _make_user("outsider@taskboard.test", "Oscar Outsider")

        # --- Workspace ---
        workspace = Workspace(name="Launch Team", owner_id=owner.id)
        _db.session.add(workspace)
        _db.session.flush()
        _db.session.add(WorkspaceMember(user_id=owner.id, workspace_id=workspace.id, role="owner"))
        _db.session.add(WorkspaceMember(user_id=member.id, workspace_id=workspace.id, role="member"))

        # --- Shared board (workspace visibility) ---
        board = Board(title="Roadmap", workspace_id=workspace.id, owner_id=owner.id)
        _db.session.add(board)
        _db.session.flush()
        _db.session.add(BoardMember(board_id=board.id, user_id=owner.id, role="owner"))
        _db.session.add(BoardMember(board_id=board.id, user_id=member.id, role="member"))

        todo = BoardList(board_id=board.id, title="To Do", position=1024.0)
        doing = BoardList(board_id=board.id, title="In Progress", position=2048.0)
        done = BoardList(board_id=board.id, title="Done", position=3072.0)
        _db.session.add_all([todo, doing, done])
        _db.session.flush()

        cards = {}
        for title, position in [("A", 1024.0), ("B", 2048.0), ("C", 3072.0)]:
            card = Card(
                list_id=todo.id, board_id=board.id, title=title,
                position=position, creator_id=owner.id,
            )
            _db.session.add(card)
            _db.session.flush()
            cards[title] = card.id

        # --- Private board, owner only ---
        private = Board(
            title="Secret", workspace_id=workspace.id, owner_id=owner.id,
            visibility="private",
        )
        _db.session.add(private)
        _db.session.flush()
        private_list = BoardList(board_id=private.id, title="Ideas", position=1024.0)
        _db.session.add(private_list)
        _db.session.flush()

        _db.session.commit()

        return {
            "owner_id": owner.id,
            "member_id": member.id,
            "outsider_id": outsider.id,
            "owner_token": token_service.issue_token(owner),
            "member_token": token_service.issue_token(member),
            "outsider_token": token_service.issue_token(outsider),
            "workspace_id": workspace.id,
            "board_id": board.id,
            "todo_id": todo.id,
            "doing_id": doing.id,
            "done_id": done.id,
            "card_a": cards["A"],
            "card_b": cards["B"],
            "card_c": cards["C"],
            "private_board_id": private.id,
            "private_list_id": private_list.id,
        }
