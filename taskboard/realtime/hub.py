"""Per-board publish/subscribe registry.

BoardHub maps board_id -> the socket sessions currently viewing it. It is
process-wide and purely in memory: nothing is persisted, and presence is
whatever the open subscriptions say it is. A session is subscribed to at
most one board at a time.

The hub does not know about sockets. It hands each (session, event name,
payload) to a `deliver` callable bound at startup (Flask-SocketIO's emit in
the app, a recorder in tests). A delivery that raises is logged and dropped
for that one subscriber; it never reaches the publisher.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Optional

from taskboard.realtime.events import BoardEvent, UserJoinedBoard, UserLeftBoard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    """One connected client."""

    session_id: str
    user_id: str
    user_name: Optional[str] = None
    board_id: Optional[str] = None

    def presence(self):
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "sessionId": self.session_id,
        }


class BoardHub:
    def __init__(self, deliver: Optional[Callable[[str, str, dict], None]] = None):
        self._deliver = deliver
        self._lock = threading.RLock()
        self._sessions: dict[str, Session] = {}
        self._channels: dict[str, set[str]] = defaultdict(set)

    def bind(self, deliver):
        """Set the transport used to reach a single session."""
        self._deliver = deliver

    # ─── Session lifecycle ───────────────────────────────────────

    def connect(self, session_id, user_id, user_name=None):
        with self._lock:
            session = Session(session_id, user_id, user_name)
            self._sessions[session_id] = session
        logger.info(f"Session {session_id} connected for user {user_id}")
        return session

    def session(self, session_id):
        with self._lock:
            return self._sessions.get(session_id)

    def join(self, session_id, board_id):
        """Subscribe a session to a board, leaving any previous board.

        Announces the newcomer to the board's other subscribers.

        Returns:
            Presence dicts for everyone now on the board, newcomer included.

        Raises:
            KeyError: If the session never connected.
        """
        with self._lock:
            session = self._sessions[session_id]
            if session.board_id == board_id:
                return self.online(board_id)
            left = self._detach(session)
            session.board_id = board_id
            self._channels[board_id].add(session_id)

        if left is not None:
            self.publish(left)

        logger.info(f"Session {session_id} ({session.user_name}) joined board {board_id}")
        self.publish(UserJoinedBoard(
            board_id=board_id,
            actor_id=session.user_id,
            actor_name=session.user_name,
            origin_session=session_id,
            user_id=session.user_id,
            user_name=session.user_name,
            session_id=session_id,
        ))
        return self.online(board_id)

    def leave(self, session_id, board_id=None):
        """Unsubscribe a session from its board. Returns False if it had none.

        When `board_id` is given and differs from the session's board, this is
        a no-op.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.board_id is None:
                return False
            if board_id is not None and session.board_id != board_id:
                return False
            left = self._detach(session)

        self.publish(left)
        return True

    def _detach(self, session):
        """Remove a session from its channel. Caller holds the lock.

        Returns:
            The UserLeftBoard event to publish, or None if it had no board.
        """
        board_id = session.board_id
        if board_id is None:
            return None
        session.board_id = None
        members = self._channels.get(board_id)
        if members is not None:
            members.discard(session.session_id)
            if not members:
                del self._channels[board_id]
        logger.info(f"Session {session.session_id} ({session.user_name}) left board {board_id}")
        return UserLeftBoard(
            board_id=board_id,
            actor_id=session.user_id,
            actor_name=session.user_name,
            origin_session=session.session_id,
            user_id=session.user_id,
            user_name=session.user_name,
            session_id=session.session_id,
        )

    def disconnect(self, session_id):
        self.leave(session_id)
        with self._lock:
            self._sessions.pop(session_id, None)
        logger.info(f"Session {session_id} disconnected")

    def clear(self):
        """Drop every session and subscription (shutdown, tests)."""
        with self._lock:
            self._sessions.clear()
            self._channels.clear()

    # ─── Queries ─────────────────────────────────────────────────

    def subscribers(self, board_id):
        with self._lock:
            return frozenset(self._channels.get(board_id, ()))

    def session_count(self):
        with self._lock:
            return len(self._sessions)

    def online(self, board_id):
        with self._lock:
            return [
                self._sessions[sid].presence()
                for sid in sorted(self._channels.get(board_id, ()))
                if sid in self._sessions
            ]

    # ─── Fan-out ─────────────────────────────────────────────────

    def publish(self, event: BoardEvent, exclude=None):
        """Deliver `event` to every subscriber of its board but the origin.

        `exclude` defaults to the event's origin session.

        Returns:
            The number of sessions the event was delivered to.
        """
        if exclude is None:
            exclude = event.origin_session
        targets = [sid for sid in self.subscribers(event.board_id) if sid != exclude]
        if not targets:
            return 0
        if self._deliver is None:
            logger.warning(f"No transport bound; dropping {event.name} for board {event.board_id}")
            return 0

        payload = event.to_payload()
        delivered = 0
        for sid in targets:
            try:
                self._deliver(sid, event.name, payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropped {event.name} for session {sid}: {e}")
        return delivered
