"""Local, in-memory copy of one board as a client sees it.

BoardView holds the board's live lists and their cards, each kept sorted by
position with the same tie rule the server uses (equal positions keep
arrival order). Every mutator is idempotent by id: adding something that is
already there updates it in place, removing something that is gone is a
no-op.

Operations that reference a parent or entity the view does not know about
raise Inconsistent; the reconciler answers that with a full re-fetch.
"""

from dataclasses import dataclass, field
from typing import Optional

from taskboard.services.positioning import index_for_position


class Inconsistent(Exception):
    """The local view cannot apply a change without guessing."""


@dataclass
class LocalCard:
    id: str
    list_id: str
    title: str
    position: float
    data: dict = field(default_factory=dict)
    comments: list = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload):
        return cls(
            id=payload["id"],
            list_id=payload["listId"],
            title=payload.get("title", ""),
            position=float(payload["position"]),
            data=dict(payload),
        )


@dataclass
class LocalList:
    id: str
    title: str
    position: float
    cards: list = field(default_factory=list)

    def card_ids(self):
        return [c.id for c in self.cards]

    def positions(self, exclude=None):
        return [c.position for c in self.cards if c.id != exclude]

    def insert(self, card):
        """Splice a card in by position (after any equal positions)."""
        index = index_for_position(self.positions(), card.position)
        self.cards.insert(index, card)

    def resort(self):
        self.cards.sort(key=lambda c: c.position)


class BoardView:
    def __init__(self, board_id, lists=None):
        self.board_id = board_id
        self._lists: dict[str, LocalList] = {}
        for board_list in lists or []:
            self._lists[board_list.id] = board_list

    @classmethod
    def from_payload(cls, payload):
        """Build a view from the GET /api/boards/<id> response."""
        view = cls(payload["id"])
        view.load(payload)
        return view

    def load(self, payload):
        """Replace the whole view with a fresh board payload."""
        if payload.get("id") != self.board_id:
            raise Inconsistent(f"Payload is for board {payload.get('id')}, not {self.board_id}")
        self._lists = {}
        for item in payload.get("lists", []):
            board_list = LocalList(item["id"], item.get("title", ""), float(item["position"]))
            for card in item.get("cards", []):
                board_list.insert(LocalCard.from_payload(card))
            self._lists[board_list.id] = board_list

    # ─── Reads ───────────────────────────────────────────────────

    def lists(self):
        """Lists in display order."""
        return sorted(self._lists.values(), key=lambda l: l.position)

    def list_ids(self):
        return [l.id for l in self.lists()]

    def get_list(self, list_id) -> Optional[LocalList]:
        return self._lists.get(list_id)

    def find_card(self, card_id):
        """(LocalList, LocalCard) holding `card_id`, or (None, None)."""
        for board_list in self._lists.values():
            for card in board_list.cards:
                if card.id == card_id:
                    return board_list, card
        return None, None

    def card_order(self, list_id):
        return self._require_list(list_id).card_ids()

    def card_positions(self, list_id, exclude=None):
        return self._require_list(list_id).positions(exclude=exclude)

    def list_positions(self, exclude=None):
        return [l.position for l in self.lists() if l.id != exclude]

    def _require_list(self, list_id):
        board_list = self._lists.get(list_id)
        if board_list is None:
            raise Inconsistent(f"Unknown list {list_id}")
        return board_list

    # ─── Card mutators ───────────────────────────────────────────

    def place_card(self, card_id, to_list_id, position):
        """Move a known card to `to_list_id` at `position`."""
        target = self._require_list(to_list_id)
        source, card = self.find_card(card_id)
        if card is None:
            raise Inconsistent(f"Unknown card {card_id}")
        source.cards.remove(card)
        card.list_id = target.id
        card.position = float(position)
        card.data.update({"listId": target.id, "position": card.position})
        target.insert(card)
        return card

    def add_card(self, payload):
        target = self._require_list(payload["listId"])
        source, existing = self.find_card(payload["id"])
        if existing is not None:
            source.cards.remove(existing)
        card = LocalCard.from_payload(payload)
        if existing is not None:
            card.comments = existing.comments
        target.insert(card)
        return card

    def update_card(self, card_id, updates):
        _, card = self.find_card(card_id)
        if card is None:
            raise Inconsistent(f"Unknown card {card_id}")
        card.data.update(updates)
        if "title" in updates:
            card.title = updates["title"]
        return card

    def remove_card(self, card_id):
        source, card = self.find_card(card_id)
        if card is None:
            return False
        source.cards.remove(card)
        return True

    def apply_card_positions(self, list_id, positions):
        """Adopt a rebalance {card_id: position} for one list."""
        board_list = self._require_list(list_id)
        known = {c.id: c for c in board_list.cards}
        missing = set(positions) - set(known)
        if missing:
            raise Inconsistent(f"Rebalance names cards not in list {list_id}: {sorted(missing)}")
        for card_id, position in positions.items():
            known[card_id].position = float(position)
            known[card_id].data["position"] = float(position)
        board_list.resort()

    def add_comment(self, card_id, comment):
        _, card = self.find_card(card_id)
        if card is None:
            raise Inconsistent(f"Unknown card {card_id}")
        if all(c.get("id") != comment.get("id") for c in card.comments):
            card.comments.append(comment)
        return card

    # ─── List mutators ───────────────────────────────────────────

    def place_list(self, list_id, position):
        board_list = self._require_list(list_id)
        board_list.position = float(position)
        return board_list

    def add_list(self, payload):
        existing = self._lists.get(payload["id"])
        board_list = LocalList(payload["id"], payload.get("title", ""), float(payload["position"]))
        if existing is not None:
            board_list.cards = existing.cards
        for card in payload.get("cards", []):
            if card["id"] not in board_list.card_ids():
                board_list.insert(LocalCard.from_payload(card))
        self._lists[board_list.id] = board_list
        return board_list

    def update_list(self, list_id, updates):
        board_list = self._require_list(list_id)
        if "title" in updates:
            board_list.title = updates["title"]
        return board_list

    def remove_list(self, list_id):
        return self._lists.pop(list_id, None) is not None

    def apply_list_positions(self, positions):
        missing = set(positions) - set(self._lists)
        if missing:
            raise Inconsistent(f"Rebalance names unknown lists: {sorted(missing)}")
        for list_id, position in positions.items():
            self._lists[list_id].position = float(position)
