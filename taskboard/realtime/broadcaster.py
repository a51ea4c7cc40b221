"""Bridges committed mutations to the board hub.

`publish()` is called by the mutation services right after commit. Outside
tests the fan-out runs as a Socket.IO background task, so the HTTP response
to the originating client never waits on other sessions.
"""

import logging

from flask import current_app

from taskboard.extensions import hub, socketio

logger = logging.getLogger(__name__)


def _emit(session_id, event_name, payload):
    socketio.emit(event_name, payload, to=session_id)


def init_broadcaster(app):
    """Bind the hub's transport to Flask-SocketIO."""
    hub.bind(_emit)
    app.extensions["board_hub"] = hub


def _fan_out(events):
    for event in events:
        delivered = hub.publish(event)
        logger.debug(f"{event.name} on board {event.board_id} -> {delivered} session(s)")


def envelope(board_id, actor, origin=None):
    """Common event fields: board, actor identity, originating session."""
    return {
        "board_id": board_id,
        "actor_id": actor.id,
        "actor_name": actor.display_name,
        "origin_session": origin,
    }


def publish(*events):
    """Fan events out to their boards' subscribers, origin session excluded."""
    events = [e for e in events if e is not None]
    if not events:
        return
    if current_app.config.get("BROADCAST_ASYNC", True):
        socketio.start_background_task(_fan_out, events)
    else:
        _fan_out(events)
