"""Wires a BoardView, Reconciler, BoardApi and BoardSocket together.

Usage:
    client = BoardClient.login("http://localhost:5001", "me@example.com", "pw")
    client.open(board_id)
    client.reconciler.move_card(card_id, list_id, index=0)
    client.close()
"""

import logging

from taskboard.client.reconciler import Reconciler
from taskboard.client.state import BoardView
from taskboard.client.transport import BoardApi, BoardSocket

logger = logging.getLogger(__name__)


class BoardClient:
    def __init__(self, base_url, token, actor_id, notify=None, socket_client=None, http=None):
        self.api = BoardApi(base_url, token=token, http=http)
        self.actor_id = actor_id
        self.notify = notify
        self.reconciler = None
        self.socket = BoardSocket(
            base_url, token, self._on_event,
            client=socket_client, on_reconnect=self._on_reconnect,
        )

    @classmethod
    def login(cls, base_url, email, password, notify=None):
        api = BoardApi(base_url)
        user = api.login(email, password)
        return cls(base_url, api.token, user["id"], notify=notify)

    @property
    def view(self):
        return self.reconciler.view if self.reconciler else None

    def open(self, board_id):
        """Connect, subscribe, then load the board.

        Subscribing before the initial fetch means no event can fall between
        the snapshot and the subscription.
        """
        session_id = self.socket.connect()
        self.api.session_id = session_id
        self.reconciler = Reconciler(
            BoardView(board_id), self.api, self.actor_id,
            session_id=session_id, notify=self.notify,
        )
        ack = self.socket.join(board_id)
        for presence in ack.get("online", []):
            self.reconciler.online[presence["sessionId"]] = presence
        self.reconciler.refetch()
        logger.info(f"Opened board {board_id} as session {session_id}")
        return self.reconciler.view

    def close(self):
        self.socket.leave()
        self.socket.disconnect()

    def _on_event(self, name, payload):
        if self.reconciler is not None:
            self.reconciler.handle_event(name, payload)

    def _on_reconnect(self, session_id):
        """New socket session: adopt its id and reload what was missed."""
        self.api.session_id = session_id
        if self.reconciler is None:
            return
        self.reconciler.session_id = session_id
        logger.info(f"Reconnected to board {self.reconciler.view.board_id} as session {session_id}")
        self.reconciler.refetch()
