"""Tests for the board hub (subscriber registry and fan-out).

Covers:
- Join/leave/disconnect bookkeeping and presence
- One board per session
- Origin exclusion and per-subscriber failure isolation
"""

import threading

from taskboard.realtime.events import CardDeleted
from taskboard.realtime.hub import BoardHub


# ─── Helpers ───────────────────────────────────────────────

def _recording_hub():
    sent = []
    hub = BoardHub(lambda sid, name, payload: sent.append((sid, name, payload)))
    return hub, sent


def _event(board_id="b1", origin=None):
    return CardDeleted(
        board_id=board_id, actor_id="u1", actor_name="Una", origin_session=origin,
        card_id="c1", list_id="l1",
    )


class TestSubscriptions:

    def test_join_returns_presence_and_announces(self):
        hub, sent = _recording_hub()
        hub.connect("s1", "u1", "Una")
        hub.connect("s2", "u2", "Ugo")
        hub.join("s1", "b1")
        sent.clear()

        online = hub.join("s2", "b1")
        assert {p["sessionId"] for p in online} == {"s1", "s2"}
        assert [(sid, name) for sid, name, _ in sent] == [("s1", "user-joined-board")]
        assert sent[0][2]["userName"] == "Ugo"

    def test_joining_another_board_leaves_the_first(self):
        hub, sent = _recording_hub()
        hub.connect("s1", "u1", "Una")
        hub.join("s1", "b1")
        hub.join("s1", "b2")
        assert hub.subscribers("b1") == frozenset()
        assert hub.subscribers("b2") == {"s1"}

    def test_concurrent_joins_keep_one_board(self):
        hub, _ = _recording_hub()
        hub.connect("s1", "u1", "Una")
        boards = [f"b{i % 4}" for i in range(200)]
        start = threading.Barrier(8)

        def worker(offset):
            start.wait()
            for board_id in boards[offset::8]:
                hub.join("s1", board_id)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        subscribed = [b for b in ("b0", "b1", "b2", "b3") if "s1" in hub.subscribers(b)]
        assert subscribed == [hub.session("s1").board_id]

    def test_leave_and_disconnect(self):
        hub, sent = _recording_hub()
        hub.connect("s1", "u1", "Una")
        hub.connect("s2", "u2", "Ugo")
        hub.join("s1", "b1")
        hub.join("s2", "b1")
        sent.clear()

        assert hub.leave("s2", "b1") is True
        assert hub.leave("s2", "b1") is False
        assert [(sid, name) for sid, name, _ in sent] == [("s1", "user-left-board")]

        hub.disconnect("s1")
        assert hub.session("s1") is None
        assert hub.online("b1") == []

    def test_leave_other_board_is_noop(self):
        hub, _ = _recording_hub()
        hub.connect("s1", "u1")
        hub.join("s1", "b1")
        assert hub.leave("s1", "b2") is False
        assert hub.subscribers("b1") == {"s1"}

    def test_join_unknown_session(self):
        hub, _ = _recording_hub()
        try:
            hub.join("ghost", "b1")
        except KeyError:
            pass
        else:
            raise AssertionError("join should reject unknown sessions")


class TestPublish:

    def test_excludes_origin(self):
        hub, sent = _recording_hub()
        for sid in ("s1", "s2", "s3"):
            hub.connect(sid, f"user-{sid}")
            hub.join(sid, "b1")
        sent.clear()

        assert hub.publish(_event(origin="s2")) == 2
        assert sorted(sid for sid, _, _ in sent) == ["s1", "s3"]
        assert all(name == "card-deleted" for _, name, _ in sent)

    def test_other_boards_untouched(self):
        hub, sent = _recording_hub()
        hub.connect("s1", "u1")
        hub.join("s1", "b2")
        sent.clear()
        assert hub.publish(_event("b1")) == 0
        assert sent == []

    def test_failed_delivery_is_dropped(self):
        received = []

        def flaky(sid, name, payload):
            if sid == "s1":
                raise ConnectionError("socket gone")
            received.append(sid)

        hub = BoardHub()
        hub.connect("s1", "u1")
        hub.connect("s2", "u2")
        hub.join("s1", "b1")
        hub.join("s2", "b1")
        hub.bind(flaky)

        assert hub.publish(_event()) == 1
        assert received == ["s2"]

    def test_no_transport_bound(self):
        hub = BoardHub()
        hub.connect("s1", "u1")
        hub.join("s1", "b1")
        assert hub.publish(_event()) == 0

    def test_payload_is_camel_case(self):
        hub, sent = _recording_hub()
        hub.connect("s1", "u1")
        hub.join("s1", "b1")
        sent.clear()
        hub.publish(_event())
        assert sent[0][2] == {
            "boardId": "b1",
            "actorId": "u1",
            "actorName": "Una",
            "originSession": None,
            "cardId": "c1",
            "listId": "l1",
        }
