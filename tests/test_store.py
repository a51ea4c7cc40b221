"""Tests for the persistence gateway.

Covers:
- Lookups raise NotFound for missing entities
- Sibling queries are ordered and skip archived rows
- Cross-list move re-parents and re-positions in one step
- Rebalance writes
"""

import pytest

from taskboard.errors import NotFound
from taskboard.extensions import db
from taskboard.models.kanban import Card
from taskboard.services import store


class TestLookups:

    @pytest.mark.parametrize("getter,label", [
        (store.get_board, "Board"),
        (store.get_list, "List"),
        (store.get_card, "Card"),
        (store.get_comment, "Comment"),
        (store.get_workspace, "Workspace"),
    ])
    def test_missing_entity_raises_not_found(self, app, getter, label):
        with app.app_context():
            with pytest.raises(NotFound) as exc:
                getter("does-not-exist")
            assert exc.value.message == f"{label} not found"
            assert exc.value.status_code == 404

    def test_none_id_raises_not_found(self, app):
        with app.app_context():
            with pytest.raises(NotFound):
                store.get_card(None)


class TestSiblings:

    def test_card_siblings_in_position_order(self, app, seed_data):
        with app.app_context():
            card = db.session.get(Card, seed_data["card_a"])
            card.position = 5000.0
            db.session.commit()

            siblings = store.card_siblings(seed_data["todo_id"])
            assert [cid for cid, _ in siblings] == [
                seed_data["card_b"], seed_data["card_c"], seed_data["card_a"],
            ]

    def test_card_siblings_exclude_and_skip_archived(self, app, seed_data):
        with app.app_context():
            db.session.get(Card, seed_data["card_b"]).archived = True
            db.session.commit()

            siblings = store.card_siblings(seed_data["todo_id"], exclude=seed_data["card_a"])
            assert siblings == [(seed_data["card_c"], 3072.0)]

    def test_list_siblings(self, app, seed_data):
        with app.app_context():
            siblings = store.list_siblings(seed_data["board_id"])
            assert [p for _, p in siblings] == [1024.0, 2048.0, 3072.0]


class TestMoveCard:

    def test_cross_list_move_is_one_update(self, app, seed_data):
        with app.app_context():
            card = store.move_card(seed_data["card_c"], seed_data["done_id"], 512.0)
            db.session.commit()
            assert card.list_id == seed_data["done_id"]
            assert card.position == 512.0

        with app.app_context():
            card = db.session.get(Card, seed_data["card_c"])
            assert card.list_id == seed_data["done_id"]
            assert card.board_id == seed_data["board_id"]
            assert card.position == 512.0
            # Exactly one list holds the card.
            assert seed_data["card_c"] not in [cid for cid, _ in store.card_siblings(seed_data["todo_id"])]
            assert [cid for cid, _ in store.card_siblings(seed_data["done_id"])] == [seed_data["card_c"]]

    def test_move_to_missing_list_changes_nothing(self, app, seed_data):
        with app.app_context():
            with pytest.raises(NotFound):
                store.move_card(seed_data["card_c"], "no-such-list", 1.0)
            db.session.rollback()

        with app.app_context():
            card = db.session.get(Card, seed_data["card_c"])
            assert card.list_id == seed_data["todo_id"]
            assert card.position == 3072.0

    def test_move_missing_card(self, app, seed_data):
        with app.app_context():
            with pytest.raises(NotFound):
                store.move_card("no-such-card", seed_data["done_id"], 1.0)

    def test_move_list(self, app, seed_data):
        with app.app_context():
            board_list = store.move_list(seed_data["done_id"], 512.0)
            db.session.commit()
            assert board_list.position == 512.0
            assert store.list_siblings(seed_data["board_id"])[0] == (seed_data["done_id"], 512.0)


class TestApplyPositions:

    def test_apply_card_positions(self, app, seed_data):
        with app.app_context():
            store.apply_card_positions({
                seed_data["card_a"]: 3.0,
                seed_data["card_b"]: 1.0,
                seed_data["card_c"]: 2.0,
            })
            db.session.commit()
            assert [cid for cid, _ in store.card_siblings(seed_data["todo_id"])] == [
                seed_data["card_b"], seed_data["card_c"], seed_data["card_a"],
            ]

    def test_unknown_id_raises(self, app, seed_data):
        with app.app_context():
            with pytest.raises(NotFound):
                store.apply_list_positions({"missing": 1.0})
