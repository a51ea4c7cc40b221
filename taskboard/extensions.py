"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_socketio import SocketIO

from taskboard.realtime.hub import BoardHub

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limit; applied per-route
    storage_uri="memory://",
)
socketio = SocketIO()

# Process-wide board channel registry (board_id -> subscribed sessions).
hub = BoardHub()


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID from session. Imports lazily to avoid circular deps."""
    from taskboard.models.user import User

    return db.session.get(User, user_id)


@login_manager.request_loader
def load_user_from_request(request):
    """Resolve `Authorization: Bearer <token>` to a user for API calls."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    from taskboard.services import token_service

    return token_service.user_for_token(auth_header[7:])


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401
