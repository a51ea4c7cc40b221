"""Client-side reconciliation of optimistic edits with the board channel.

Every entity the client touches goes through a small state machine:

    SYNCED --local mutation--> PENDING --matching ack--> SYNCED
    PENDING --remote event for the entity--> RECONCILING --ack--> re-fetch, SYNCED
    PENDING --failed request / mismatched ack--> re-fetch, notify, SYNCED

Remote events are merged straight into the BoardView unless they are this
client's own echo (same actor, or same socket session). A merge that cannot
be applied cleanly (unknown list, unknown moved card) is discarded in favour
of a full re-fetch.

One lock serializes every change to local state. It is never held across a
network call: a mutation takes it to apply the optimistic change, releases
it for the REST round trip, and takes it again for the acknowledgement.
"""

import enum
import logging
import threading

from taskboard.client.state import BoardView, Inconsistent
from taskboard.client.transport import ApiError
from taskboard.realtime import events
from taskboard.services import positioning

logger = logging.getLogger(__name__)


class SyncState(enum.Enum):
    SYNCED = "synced"
    PENDING = "pending"
    RECONCILING = "reconciling"


def _entity_of(event):
    """Id of the card or list a board event is about, if any."""
    if isinstance(event, events.CommentAdded):
        return None
    for attr in ("card_id", "list_id"):
        value = getattr(event, attr, None)
        if value:
            return value
    if isinstance(event, events.CardCreated):
        return event.card.get("id")
    if isinstance(event, events.ListCreated):
        return event.list.get("id")
    return None


class Reconciler:
    """Keeps one BoardView consistent with the server for one client.

    Args:
        view: The local BoardView.
        api: A BoardApi (or anything with get_board/move_card/move_list).
        actor_id: The signed-in user's id; their own events are echoes.
        session_id: This client's socket session id, once connected.
        notify: Called with a short message when an optimistic change had to
            be discarded. Must not block.
    """

    def __init__(self, view: BoardView, api, actor_id, session_id=None, notify=None):
        self.view = view
        self.api = api
        self.actor_id = actor_id
        self.session_id = session_id
        self.notify = notify or (lambda message: None)
        self.online = {}
        self._states = {}
        self._lock = threading.RLock()

    # ─── State machine ───────────────────────────────────────────

    def state_of(self, entity_id):
        with self._lock:
            return self._states.get(entity_id, SyncState.SYNCED)

    def _begin(self, entity_id):
        self._states[entity_id] = SyncState.PENDING

    def _settle(self, entity_id):
        """Leave the in-flight state; returns the state the entity was in."""
        return self._states.pop(entity_id, SyncState.SYNCED)

    def _fail(self, entity_id, message):
        with self._lock:
            self._settle(entity_id)
        logger.warning(f"Discarding optimistic change to {entity_id}: {message}")
        self.refetch()
        self.notify(message)

    def refetch(self):
        """Replace local state with the server's board. Network call; no lock held.

        Returns:
            False if the board could not be fetched; local state is kept and
            the next event or mutation gets another chance to re-fetch.
        """
        try:
            payload = self.api.get_board(self.view.board_id)
        except ApiError as e:
            logger.warning(f"Re-fetch of board {self.view.board_id} failed: {e.message}")
            self.notify(f"Could not reload board: {e.message}")
            return False
        with self._lock:
            self.view.load(payload)
        logger.info(f"Re-fetched board {self.view.board_id}")
        return True

    # ─── Optimistic mutations ────────────────────────────────────

    def move_card(self, card_id, to_list_id, index):
        """Move a card optimistically, then confirm with the server.

        The position comes from the positioning engine over the local
        destination list. When the engine asks for a rebalance the re-spaced
        positions are applied locally and the request goes out by index, so
        the server recomputes and persists the rebalance itself.

        Returns:
            True if the server acknowledged the move as applied locally.
        """
        with self._lock:
            _, card = self.view.find_card(card_id)
            target = self.view.get_list(to_list_id)
            if card is None or target is None:
                raise KeyError(card_id if card is None else to_list_id)
            siblings = [c for c in target.cards if c.id != card_id]
            index = min(index, len(siblings))
            placement = positioning.place([c.position for c in siblings], index)
            self.view.place_card(card_id, to_list_id, placement.position)
            if placement.rebalanced:
                ids = [c.id for c in siblings]
                ids.insert(index, card_id)
                self.view.apply_card_positions(to_list_id, dict(zip(ids, placement.rebalanced)))
                request = {"list_id": to_list_id, "index": index}
            else:
                request = {"list_id": to_list_id, "position": placement.position}
            self._begin(card_id)

        try:
            ack = self.api.move_card(card_id, **request)
        except ApiError as e:
            self._fail(card_id, f"Could not move card: {e.message}")
            return False

        return self._complete_card_move(card_id, to_list_id, placement.position, request, ack)

    def _complete_card_move(self, card_id, to_list_id, position, request, ack):
        with self._lock:
            prior = self._settle(card_id)
            if prior is SyncState.RECONCILING:
                mismatch = None
            elif ack.get("listId") != to_list_id:
                mismatch = f"server placed card in list {ack.get('listId')}"
            elif "index" in request:
                mismatch = None
                try:
                    self.view.place_card(card_id, to_list_id, ack["position"])
                    if ack.get("rebalanced"):
                        self.view.apply_card_positions(to_list_id, ack["rebalanced"])
                except Inconsistent as e:
                    mismatch = str(e)
                else:
                    return True
            elif ack.get("position") != position:
                mismatch = f"server stored position {ack.get('position')}, expected {position}"
            else:
                return True

        if prior is SyncState.RECONCILING:
            logger.info(f"Card {card_id} changed remotely while in flight; re-fetching")
            self.refetch()
            return False
        logger.warning(f"Move ack for card {card_id} does not match: {mismatch}")
        self.refetch()
        self.notify("Card position was updated from the server")
        return False

    def move_list(self, list_id, index):
        """Reorder a list optimistically. Same contract as move_card."""
        with self._lock:
            if self.view.get_list(list_id) is None:
                raise KeyError(list_id)
            siblings = [l for l in self.view.lists() if l.id != list_id]
            index = min(index, len(siblings))
            placement = positioning.place([l.position for l in siblings], index)
            self.view.place_list(list_id, placement.position)
            if placement.rebalanced:
                ids = [l.id for l in siblings]
                ids.insert(index, list_id)
                self.view.apply_list_positions(dict(zip(ids, placement.rebalanced)))
                request = {"index": index}
            else:
                request = {"position": placement.position}
            self._begin(list_id)

        try:
            ack = self.api.move_list(list_id, **request)
        except ApiError as e:
            self._fail(list_id, f"Could not move list: {e.message}")
            return False

        with self._lock:
            prior = self._settle(list_id)
            if prior is not SyncState.RECONCILING:
                if "index" in request:
                    self.view.place_list(list_id, ack["position"])
                    if ack.get("rebalanced"):
                        self.view.apply_list_positions(ack["rebalanced"])
                    return True
                if ack.get("position") == placement.position:
                    return True

        self.refetch()
        if prior is not SyncState.RECONCILING:
            self.notify("List position was updated from the server")
        return False

    # ─── Remote events ───────────────────────────────────────────

    def is_echo(self, event):
        if self.actor_id is not None and event.actor_id == self.actor_id:
            return True
        return self.session_id is not None and event.origin_session == self.session_id

    def handle_event(self, name, payload):
        """Merge one board-channel event into local state.

        Returns:
            True if the event was applied, False if it was ignored (echo,
            other board, malformed) or had to be replaced by a re-fetch.
        """
        try:
            event = events.parse_event(name, payload)
        except events.MalformedEvent as e:
            logger.warning(f"Ignoring malformed {name} event: {e}")
            return False
        if event.board_id != self.view.board_id:
            return False

        if isinstance(event, (events.UserJoinedBoard, events.UserLeftBoard)):
            self._track_presence(event)
            return True
        if self.is_echo(event):
            logger.debug(f"Ignoring own {name} echo")
            return False

        with self._lock:
            entity_id = _entity_of(event)
            if self._states.get(entity_id) is SyncState.PENDING:
                self._states[entity_id] = SyncState.RECONCILING
            try:
                self._apply(event)
                return True
            except Inconsistent as e:
                logger.info(f"Cannot merge {name}: {e}; re-fetching board")

        self.refetch()
        return False

    def _track_presence(self, event):
        with self._lock:
            if isinstance(event, events.UserJoinedBoard):
                self.online[event.session_id] = {
                    "userId": event.user_id,
                    "userName": event.user_name,
                    "sessionId": event.session_id,
                }
            else:
                self.online.pop(event.session_id, None)

    def _apply(self, event):
        view = self.view
        if isinstance(event, events.CardMoved):
            view.place_card(event.card_id, event.to_list_id, event.new_position)
            if event.rebalanced:
                view.apply_card_positions(event.to_list_id, event.rebalanced)
        elif isinstance(event, events.CardCreated):
            card = view.add_card(event.card)
            if event.rebalanced:
                view.apply_card_positions(card.list_id, event.rebalanced)
        elif isinstance(event, events.CardUpdated):
            view.update_card(event.card_id, event.updates)
        elif isinstance(event, events.CardDeleted):
            view.remove_card(event.card_id)
        elif isinstance(event, events.ListMoved):
            view.place_list(event.list_id, event.new_position)
            if event.rebalanced:
                view.apply_list_positions(event.rebalanced)
        elif isinstance(event, events.ListCreated):
            view.add_list(event.list)
        elif isinstance(event, events.ListUpdated):
            view.update_list(event.list_id, event.updates)
        elif isinstance(event, (events.ListArchived, events.ListDeleted)):
            view.remove_list(event.list_id)
        elif isinstance(event, events.CommentAdded):
            view.add_comment(event.card_id, event.comment)
