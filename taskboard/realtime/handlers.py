"""Socket.IO event handlers — connection auth, board channels, heartbeat.

Registered on the shared `socketio` instance at import time; create_app()
imports this module once.

Client -> server:
  connect      auth={"token": ...}   — rejected without a valid API token
  join-board   boardId               — ack: {ok, boardId, sessionId, online}
  leave-board  boardId               — ack: {ok}
  ping                               — answered with `pong`
"""

import logging
from datetime import datetime, timezone

from flask import request

from taskboard.errors import NotFound
from taskboard.extensions import hub, socketio
from taskboard.services import access, store, token_service

logger = logging.getLogger(__name__)


def _board_id(data):
    """Accept either a bare board id or {"boardId": ...}."""
    if isinstance(data, dict):
        data = data.get("boardId")
    return data if isinstance(data, str) and data else None


@socketio.on("connect")
def on_connect(auth=None):
    token = auth.get("token") if isinstance(auth, dict) else None
    token = token or request.args.get("token")
    user = token_service.user_for_token(token)
    if user is None:
        logger.info(f"Refused socket connection {request.sid}: missing or invalid token")
        return False
    hub.connect(request.sid, user.id, user.display_name)
    return True


@socketio.on("disconnect")
def on_disconnect(reason=None):
    hub.disconnect(request.sid)
    if reason:
        logger.debug(f"Session {request.sid} disconnect reason: {reason}")


@socketio.on("join-board")
def on_join_board(data):
    session = hub.session(request.sid)
    if session is None:
        return {"ok": False, "error": "Not connected"}

    board_id = _board_id(data)
    if board_id is None:
        return {"ok": False, "error": "boardId is required"}
    try:
        board = store.get_board(board_id)
    except NotFound as e:
        return {"ok": False, "error": e.message}
    if not access.can_read(board, session.user_id):
        logger.warning(f"User {session.user_id} denied join on private board {board_id}")
        return {"ok": False, "error": "Access denied"}

    online = hub.join(request.sid, board.id)
    return {"ok": True, "boardId": board.id, "sessionId": request.sid, "online": online}


@socketio.on("leave-board")
def on_leave_board(data=None):
    return {"ok": hub.leave(request.sid, _board_id(data))}


@socketio.on("ping")
def on_ping(data=None):
    socketio.emit("pong", {"ts": datetime.now(timezone.utc).isoformat()}, to=request.sid)
