"""Network side of the client library.

- BoardApi: REST calls over a `requests.Session` with the bearer token and
  the `X-Socket-ID` header, so the server leaves this client's own socket
  out of the broadcast.
- BoardSocket: a python-socketio client that authenticates with the same
  token, joins one board channel and forwards every board event to a
  handler (normally Reconciler.handle_event).
"""

import logging
from functools import partial

import requests
import socketio
from socketio import exceptions as socketio_exceptions

from taskboard.realtime.events import EVENT_TYPES

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A REST call failed: HTTP error status or no response at all."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class BoardApi:
    def __init__(self, base_url, token=None, session_id=None, timeout=10, http=None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session_id = session_id
        self.timeout = timeout
        self.http = http or requests.Session()

    def _headers(self):
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.session_id:
            headers["X-Socket-ID"] = self.session_id
        return headers

    def _request(self, method, path, json=None, params=None):
        url = f"{self.base_url}/api{path}"
        try:
            resp = self.http.request(
                method, url,
                json=json, params=params,
                headers=self._headers(), timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning(f"{method} {path} timed out")
            raise ApiError("Request timed out")
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(f"Request failed: {e}")

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400:
            message = body.get("error") if isinstance(body, dict) else None
            raise ApiError(message or f"HTTP {resp.status_code}", resp.status_code, body)
        return body

    # ─── Auth ────────────────────────────────────────────────────

    def login(self, email, password):
        body = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = body["token"]
        return body["user"]

    def refresh_token(self):
        self.token = self._request("POST", "/auth/refresh")["token"]
        return self.token

    # ─── Boards ──────────────────────────────────────────────────

    def get_board(self, board_id):
        return self._request("GET", f"/boards/{board_id}")

    def search_cards(self, board_id, query=None, labels=None, assignees=None, due=None):
        params = {}
        if query:
            params["q"] = query
        if labels:
            params["labels"] = ",".join(labels)
        if assignees:
            params["assignees"] = ",".join(assignees)
        if due:
            params["dueDate"] = due
        return self._request("GET", f"/boards/{board_id}/search", params=params)

    # ─── Cards ───────────────────────────────────────────────────

    def create_card(self, list_id, title, description=None, position=None):
        payload = {"listId": list_id, "title": title}
        if description is not None:
            payload["description"] = description
        if position is not None:
            payload["position"] = position
        return self._request("POST", "/cards", json=payload)

    def move_card(self, card_id, list_id=None, position=None, index=None):
        payload = {}
        if list_id is not None:
            payload["listId"] = list_id
        if position is not None:
            payload["position"] = position
        if index is not None:
            payload["index"] = index
        return self._request("PUT", f"/cards/{card_id}/move", json=payload)

    def update_card(self, card_id, **fields):
        return self._request("PUT", f"/cards/{card_id}", json=fields)

    def delete_card(self, card_id):
        return self._request("DELETE", f"/cards/{card_id}")

    # ─── Lists ───────────────────────────────────────────────────

    def move_list(self, list_id, position=None, index=None):
        payload = {}
        if position is not None:
            payload["position"] = position
        if index is not None:
            payload["index"] = index
        return self._request("PUT", f"/lists/{list_id}/move", json=payload)


class BoardSocket:
    """One Socket.IO connection subscribed to at most one board.

    After an automatic reconnect the board is joined again under the new
    session id, then `on_reconnect(session_id)` is called so the owner can
    adopt the new id and re-fetch whatever it missed while offline.
    """

    def __init__(self, base_url, token, on_event, client=None, on_reconnect=None):
        self.base_url = base_url
        self.token = token
        self.on_event = on_event
        self.on_reconnect = on_reconnect
        self.board_id = None
        self._connected_before = False
        self.sio = client or socketio.Client(reconnection=True)
        for name in EVENT_TYPES:
            self.sio.on(name, handler=partial(self._dispatch, name))
        self.sio.on("connect", handler=self._on_connect)
        self.sio.on("disconnect", handler=self._on_disconnect)

    @property
    def session_id(self):
        return self.sio.get_sid() if self.sio.connected else None

    def connect(self, wait_timeout=5):
        self.sio.connect(
            self.base_url,
            auth={"token": self.token},
            transports=["websocket", "polling"],
            wait_timeout=wait_timeout,
        )
        return self.session_id

    def join(self, board_id, timeout=5):
        """Subscribe to a board. Returns the join acknowledgement."""
        ack = self.sio.call("join-board", board_id, timeout=timeout)
        if not ack or not ack.get("ok"):
            raise ApiError((ack or {}).get("error", "join-board refused"))
        self.board_id = board_id
        return ack

    def leave(self, timeout=5):
        if self.board_id is None:
            return
        self.sio.call("leave-board", self.board_id, timeout=timeout)
        self.board_id = None

    def disconnect(self):
        self.sio.disconnect()

    def _dispatch(self, name, payload):
        try:
            self.on_event(name, payload)
        except Exception as e:
            logger.error(f"Handler for {name} failed: {e}")

    def _on_connect(self):
        logger.info(f"Connected to {self.base_url} as session {self.session_id}")
        if not self._connected_before:
            self._connected_before = True
            return
        if self.board_id is not None:
            # Acks arrive on this handler's thread; wait for them elsewhere.
            self.sio.start_background_task(self._resubscribe)

    def _resubscribe(self):
        try:
            self.join(self.board_id)
        except (ApiError, socketio_exceptions.TimeoutError) as e:
            logger.warning(f"Could not rejoin board {self.board_id} after reconnect: {e}")
            return
        if self.on_reconnect is not None:
            self.on_reconnect(self.session_id)

    def _on_disconnect(self, reason=None):
        logger.info(f"Disconnected from {self.base_url}: {reason}")
