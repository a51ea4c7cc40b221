"""Tests for the REST API.

Covers:
- Auth: register, login, me, refresh, bearer token required
- Board detail ordering and visibility
- Card/list move endpoints: position or index, validation, 403/404
- Idempotent card delete, list delete/archive
- Labels, assignees, board search, user search and profile
- X-Socket-ID keeps the originating session out of the broadcast
- JSON error bodies and security headers
"""

import pytest

from taskboard.extensions import db, hub
from taskboard.models.kanban import Card


# ─── Helpers ───────────────────────────────────────────────

def _auth(token, sid=None):
    headers = {"Authorization": f"Bearer {token}"}
    if sid:
        headers["X-Socket-ID"] = sid
    return headers


def _card_titles(board_json, list_index=0):
    return [c["title"] for c in board_json["lists"][list_index]["cards"]]


# ─── Auth ──────────────────────────────────────────────────

class TestAuth:

    def test_register_and_me(self, client):
        resp = client.post("/api/auth/register", json={
            "email": "New@Example.com", "password": "longenough", "name": "Nia New",
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["user"]["email"] == "new@example.com"

        me = client.get("/api/auth/me", headers=_auth(body["token"]))
        assert me.status_code == 200
        assert me.get_json()["name"] == "Nia New"

    def test_register_validation(self, client):
        resp = client.post("/api/auth/register", json={"email": "bad", "password": "short"})
        assert resp.status_code == 400
        fields = {e["field"] for e in resp.get_json()["errors"]}
        assert fields == {"email", "password", "name"}

    def test_register_duplicate_email(self, client, seed_data):
        resp = client.post("/api/auth/register", json={
            "email": "owner@taskboard.test", "password": "password123", "name": "Dup",
        })
        assert resp.status_code == 400

    def test_login(self, client, seed_data):
        resp = client.post("/api/auth/login", json={
            "email": "member@taskboard.test", "password": "password123",
        })
        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == seed_data["member_id"]

    def test_login_wrong_password(self, client, seed_data):
        resp = client.post("/api/auth/login", json={
            "email": "member@taskboard.test", "password": "nope",
        })
        assert resp.status_code == 401

    def test_missing_token(self, client, seed_data):
        resp = client.get(f"/api/boards/{seed_data['board_id']}")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Authentication required"

    def test_tampered_token(self, client, seed_data):
        resp = client.get(
            f"/api/boards/{seed_data['board_id']}",
            headers=_auth(seed_data["owner_token"] + "x"),
        )
        assert resp.status_code == 401

    def test_refresh_token(self, client, seed_data):
        resp = client.post("/api/auth/refresh", headers=_auth(seed_data["member_token"]))
        assert resp.status_code == 200
        token = resp.get_json()["token"]
        me = client.get("/api/auth/me", headers=_auth(token))
        assert me.get_json()["id"] == seed_data["member_id"]
        assert client.post("/api/auth/refresh").status_code == 401


# ─── Boards ────────────────────────────────────────────────

class TestBoards:

    def test_board_detail_ordered(self, client, seed_data):
        resp = client.get(f"/api/boards/{seed_data['board_id']}", headers=_auth(seed_data["member_token"]))
        assert resp.status_code == 200
        body = resp.get_json()
        assert [l["title"] for l in body["lists"]] == ["To Do", "In Progress", "Done"]
        assert _card_titles(body) == ["A", "B", "C"]
        assert {m["userId"] for m in body["members"]} == {seed_data["owner_id"], seed_data["member_id"]}

    def test_private_board_hidden_from_outsider(self, client, seed_data):
        resp = client.get(
            f"/api/boards/{seed_data['private_board_id']}", headers=_auth(seed_data["outsider_token"])
        )
        assert resp.status_code == 403

    def test_unknown_board(self, client, seed_data):
        resp = client.get("/api/boards/missing", headers=_auth(seed_data["owner_token"]))
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Board not found"

    def test_create_board(self, client, seed_data):
        resp = client.post("/api/boards", headers=_auth(seed_data["owner_token"]), json={
            "title": "<b>Launch</b>", "workspaceId": seed_data["workspace_id"],
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["title"] == "Launch"
        assert [l["position"] for l in body["lists"]] == [1024.0, 2048.0, 3072.0]

    def test_create_board_bad_visibility(self, client, seed_data):
        resp = client.post("/api/boards", headers=_auth(seed_data["owner_token"]), json={
            "title": "X", "workspaceId": seed_data["workspace_id"], "visibility": "secret",
        })
        assert resp.status_code == 400

    def test_list_my_boards(self, client, seed_data):
        resp = client.get("/api/boards", headers=_auth(seed_data["member_token"]))
        assert [b["id"] for b in resp.get_json()] == [seed_data["board_id"]]

    def test_add_member_and_activities(self, client, seed_data):
        resp = client.post(
            f"/api/boards/{seed_data['board_id']}/members",
            headers=_auth(seed_data["owner_token"]),
            json={"userId": seed_data["outsider_id"], "role": "member"},
        )
        assert resp.status_code == 201

        resp = client.get(
            f"/api/boards/{seed_data['board_id']}/activities?filter=all&limit=10",
            headers=_auth(seed_data["outsider_token"]),
        )
        assert resp.status_code == 200
        assert [a["type"] for a in resp.get_json()["activities"]] == ["member_added"]

    def test_workspaces(self, client, seed_data):
        resp = client.post("/api/workspaces", headers=_auth(seed_data["outsider_token"]), json={"name": "Mine"})
        assert resp.status_code == 201
        resp = client.get("/api/workspaces", headers=_auth(seed_data["outsider_token"]))
        assert [w["name"] for w in resp.get_json()] == ["Mine"]


    def test_workspace_detail(self, client, seed_data):
        url = f"/api/workspaces/{seed_data['workspace_id']}"
        resp = client.get(url, headers=_auth(seed_data["member_token"]))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["name"] == "Launch Team"
        assert [b["title"] for b in body["boards"]] == ["Roadmap"]
        assert len(body["members"]) == 2

        assert client.get(url, headers=_auth(seed_data["outsider_token"])).status_code == 403
        assert client.get("/api/workspaces/missing", headers=_auth(seed_data["owner_token"])).status_code == 404


# ─── Labels and search ─────────────────────────────────────

class TestLabelsAndSearch:

    def test_label_assign_and_search(self, client, seed_data):
        headers = _auth(seed_data["owner_token"])
        resp = client.post(
            f"/api/boards/{seed_data['board_id']}/labels",
            headers=headers, json={"name": "Urgent", "color": "#EB5A46"},
        )
        assert resp.status_code == 201
        label = resp.get_json()
        assert label["color"] == "#eb5a46"

        resp = client.put(f"/api/cards/{seed_data['card_b']}", headers=headers, json={
            "labels": [label["id"]], "assignees": [seed_data["member_id"]],
        })
        assert resp.status_code == 200
        assert resp.get_json()["labels"] == [label["id"]]
        assert resp.get_json()["assignees"] == [seed_data["member_id"]]

        board = client.get(f"/api/boards/{seed_data['board_id']}", headers=headers).get_json()
        assert board["labels"] == [label]

        search = f"/api/boards/{seed_data['board_id']}/search"
        resp = client.get(f"{search}?labels={label['id']},other", headers=headers)
        assert [c["title"] for c in resp.get_json()] == ["B"]
        resp = client.get(f"{search}?assignees={seed_data['member_id']}&q=b", headers=headers)
        assert [c["title"] for c in resp.get_json()] == ["B"]
        resp = client.get(search, headers=headers)
        assert [c["title"] for c in resp.get_json()] == ["A", "B", "C"]

    @pytest.mark.parametrize("payload", [
        {"name": "", "color": "#ffffff"},
        {"name": "x" * 51, "color": "#ffffff"},
        {"name": "Ok", "color": "red"},
        {"name": "Ok", "color": "#fffff"},
        {"name": "Ok"},
    ])
    def test_label_validation(self, client, seed_data, payload):
        resp = client.post(
            f"/api/boards/{seed_data['board_id']}/labels",
            headers=_auth(seed_data["owner_token"]), json=payload,
        )
        assert resp.status_code == 400

    def test_bad_label_and_assignee_lists(self, client, seed_data):
        headers = _auth(seed_data["owner_token"])
        url = f"/api/cards/{seed_data['card_a']}"
        assert client.put(url, headers=headers, json={"labels": "oops"}).status_code == 400
        assert client.put(url, headers=headers, json={"labels": ["unknown"]}).status_code == 400
        assert client.put(url, headers=headers, json={"assignees": [seed_data["outsider_id"]]}).status_code == 400
        resp = client.put(url, headers=headers, json={"labels": None})
        assert resp.status_code == 200
        assert resp.get_json()["labels"] == []

    def test_search_due_filter_and_access(self, client, seed_data):
        search = f"/api/boards/{seed_data['board_id']}/search"
        resp = client.get(f"{search}?dueDate=someday", headers=_auth(seed_data["member_token"]))
        assert resp.status_code == 400
        resp = client.get(f"{search}?dueDate=overdue", headers=_auth(seed_data["member_token"]))
        assert resp.get_json() == []
        resp = client.get(
            f"/api/boards/{seed_data['private_board_id']}/search",
            headers=_auth(seed_data["member_token"]),
        )
        assert resp.status_code == 403


# ─── Users ─────────────────────────────────────────────────

class TestUsers:

    def test_search(self, client, seed_data):
        headers = _auth(seed_data["owner_token"])
        resp = client.get("/api/users/search?q=MAX", headers=headers)
        assert [u["name"] for u in resp.get_json()] == ["Max Member"]
        resp = client.get("/api/users/search?q=taskboard.test", headers=headers)
        assert [u["name"] for u in resp.get_json()] == ["Max Member", "Olivia Owner", "Oscar Outsider"]

    @pytest.mark.parametrize("query", ["", "m"])
    def test_search_needs_two_characters(self, client, seed_data, query):
        resp = client.get(f"/api/users/search?q={query}", headers=_auth(seed_data["owner_token"]))
        assert resp.status_code == 400

    def test_profile(self, client, seed_data):
        headers = _auth(seed_data["member_token"])
        assert client.get("/api/users/profile", headers=headers).get_json()["avatar"] is None

        resp = client.put("/api/users/profile", headers=headers, json={"name": "M"})
        assert resp.status_code == 400

        resp = client.put("/api/users/profile", headers=headers, json={
            "name": "Maxine Member", "avatar": "https://img.test/max.png",
        })
        assert resp.status_code == 200
        profile = client.get("/api/users/profile", headers=headers).get_json()
        assert profile["name"] == "Maxine Member"
        assert profile["avatar"] == "https://img.test/max.png"


# ─── Cards ─────────────────────────────────────────────────

class TestCardMoves:

    def test_move_by_position(self, client, seed_data):
        resp = client.put(
            f"/api/cards/{seed_data['card_c']}/move",
            headers=_auth(seed_data["member_token"]),
            json={"listId": seed_data["todo_id"], "position": 512},
        )
        assert resp.status_code == 200
        assert resp.get_json()["position"] == 512.0
        assert resp.get_json()["rebalanced"] is None

        board = client.get(f"/api/boards/{seed_data['board_id']}", headers=_auth(seed_data["owner_token"]))
        assert _card_titles(board.get_json()) == ["C", "A", "B"]

    def test_move_by_index_to_other_list(self, client, seed_data):
        resp = client.put(
            f"/api/cards/{seed_data['card_a']}/move",
            headers=_auth(seed_data["owner_token"]),
            json={"listId": seed_data["doing_id"], "index": 0},
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["listId"] == seed_data["doing_id"]
        assert body["position"] == 1024.0

    @pytest.mark.parametrize("payload", [
        {},
        {"position": "12"},
        {"position": True},
        {"position": 1e300},
        {"position": 10 ** 400},
        {"index": -1},
        {"index": 1.5},
    ])
    def test_move_validation(self, client, seed_data, payload):
        resp = client.put(
            f"/api/cards/{seed_data['card_a']}/move",
            headers=_auth(seed_data["owner_token"]),
            json=payload,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Validation failed"

    def test_move_forbidden_for_outsider(self, client, seed_data):
        resp = client.put(
            f"/api/cards/{seed_data['card_a']}/move",
            headers=_auth(seed_data["outsider_token"]),
            json={"position": 1},
        )
        assert resp.status_code == 403

    def test_move_missing_card(self, client, seed_data):
        resp = client.put(
            "/api/cards/missing/move",
            headers=_auth(seed_data["owner_token"]),
            json={"position": 1},
        )
        assert resp.status_code == 404

    def test_move_to_missing_list(self, client, seed_data):
        resp = client.put(
            f"/api/cards/{seed_data['card_a']}/move",
            headers=_auth(seed_data["owner_token"]),
            json={"listId": "missing", "position": 1},
        )
        assert resp.status_code == 404

    def test_origin_session_excluded(self, client, seed_data, delivered):
        hub.connect("sid-owner", seed_data["owner_id"], "Olivia Owner")
        hub.connect("sid-member", seed_data["member_id"], "Max Member")
        hub.join("sid-owner", seed_data["board_id"])
        hub.join("sid-member", seed_data["board_id"])
        delivered.clear()

        resp = client.put(
            f"/api/cards/{seed_data['card_c']}/move",
            headers=_auth(seed_data["owner_token"], sid="sid-owner"),
            json={"index": 0},
        )
        assert resp.status_code == 200
        assert [(sid, name) for sid, name, _ in delivered] == [("sid-member", "card-moved")]

    def test_failed_move_broadcasts_nothing(self, client, seed_data, delivered):
        hub.connect("sid-member", seed_data["member_id"], "Max Member")
        hub.join("sid-member", seed_data["board_id"])
        delivered.clear()

        client.put(
            f"/api/cards/{seed_data['card_a']}/move",
            headers=_auth(seed_data["outsider_token"]),
            json={"position": 1},
        )
        assert delivered == []


class TestCardCrud:

    def test_create_card(self, client, seed_data):
        resp = client.post("/api/cards", headers=_auth(seed_data["member_token"]), json={
            "listId": seed_data["todo_id"], "title": "D <script>x</script>",
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["position"] == 4096.0
        assert "<script>" not in body["title"]

    def test_create_card_title_too_long(self, client, seed_data):
        resp = client.post("/api/cards", headers=_auth(seed_data["member_token"]), json={
            "listId": seed_data["todo_id"], "title": "x" * 201,
        })
        assert resp.status_code == 400

    def test_update_card(self, client, seed_data):
        resp = client.put(f"/api/cards/{seed_data['card_a']}", headers=_auth(seed_data["member_token"]), json={
            "description": "Details", "dueDate": "2026-11-01T12:00:00Z", "completed": True,
        })
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["description"] == "Details"
        assert body["completed"] is True
        assert body["dueDate"].startswith("2026-11-01T12:00:00")

    def test_update_card_refuses_position(self, client, seed_data):
        resp = client.put(
            f"/api/cards/{seed_data['card_a']}",
            headers=_auth(seed_data["member_token"]),
            json={"position": 3},
        )
        assert resp.status_code == 400

    def test_get_card_detail(self, client, seed_data):
        client.put(
            f"/api/cards/{seed_data['card_a']}/move",
            headers=_auth(seed_data["owner_token"]),
            json={"index": 2},
        )
        resp = client.get(f"/api/cards/{seed_data['card_a']}", headers=_auth(seed_data["member_token"]))
        assert resp.status_code == 200
        assert [a["type"] for a in resp.get_json()["activities"]] == ["card_moved"]

    def test_card_activities(self, client, seed_data):
        headers = _auth(seed_data["owner_token"])
        client.put(f"/api/cards/{seed_data['card_a']}/move", headers=headers, json={"index": 2})
        client.put(f"/api/cards/{seed_data['card_a']}", headers=headers, json={"title": "A2"})

        resp = client.get(f"/api/cards/{seed_data['card_a']}/activities?limit=1", headers=headers)
        assert resp.status_code == 200
        assert len(resp.get_json()) == 1
        resp = client.get(f"/api/cards/{seed_data['card_a']}/activities", headers=headers)
        assert {a["type"] for a in resp.get_json()} == {"card_moved", "card_updated"}

    def test_delete_card_twice(self, client, seed_data):
        first = client.delete(f"/api/cards/{seed_data['card_a']}", headers=_auth(seed_data["owner_token"]))
        second = client.delete(f"/api/cards/{seed_data['card_a']}", headers=_auth(seed_data["owner_token"]))
        assert first.status_code == 200
        assert first.get_json()["deleted"] is True
        assert second.status_code == 200
        assert second.get_json()["deleted"] is False

    def test_comments(self, client, seed_data):
        resp = client.post(
            f"/api/cards/{seed_data['card_a']}/comments",
            headers=_auth(seed_data["member_token"]),
            json={"text": "On it"},
        )
        assert resp.status_code == 201
        resp = client.get(f"/api/cards/{seed_data['card_a']}/comments", headers=_auth(seed_data["owner_token"]))
        assert [c["text"] for c in resp.get_json()] == ["On it"]

    def test_empty_comment(self, client, seed_data):
        resp = client.post(
            f"/api/cards/{seed_data['card_a']}/comments",
            headers=_auth(seed_data["member_token"]),
            json={"text": "   "},
        )
        assert resp.status_code == 400


# ─── Lists ─────────────────────────────────────────────────

class TestLists:

    def test_create_and_rename(self, client, seed_data):
        resp = client.post("/api/lists", headers=_auth(seed_data["owner_token"]), json={
            "boardId": seed_data["board_id"], "title": "Review",
        })
        assert resp.status_code == 201
        list_id = resp.get_json()["id"]
        assert resp.get_json()["position"] == 4096.0

        resp = client.put(f"/api/lists/{list_id}", headers=_auth(seed_data["owner_token"]), json={"title": "QA"})
        assert resp.get_json()["title"] == "QA"

    def test_move_list(self, client, seed_data):
        resp = client.put(
            f"/api/lists/{seed_data['done_id']}/move",
            headers=_auth(seed_data["member_token"]),
            json={"index": 0},
        )
        assert resp.status_code == 200
        assert resp.get_json()["position"] == 512.0

    def test_archive_and_delete(self, client, seed_data):
        resp = client.delete(f"/api/lists/{seed_data['todo_id']}", headers=_auth(seed_data["owner_token"]))
        assert resp.get_json()["result"] == "archived"
        resp = client.delete(f"/api/lists/{seed_data['done_id']}", headers=_auth(seed_data["owner_token"]))
        assert resp.get_json()["result"] == "deleted"

        board = client.get(f"/api/boards/{seed_data['board_id']}", headers=_auth(seed_data["owner_token"]))
        assert [l["title"] for l in board.get_json()["lists"]] == ["In Progress"]

    def test_archive_endpoint(self, client, seed_data, app):
        resp = client.put(f"/api/lists/{seed_data['doing_id']}/archive", headers=_auth(seed_data["owner_token"]))
        assert resp.status_code == 200
        assert resp.get_json()["archived"] is True


# ─── Misc ──────────────────────────────────────────────────

class TestMisc:

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"

    def test_security_headers(self, client):
        resp = client.get("/api/health")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"

    def test_unknown_route_is_json(self, client):
        resp = client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert "error" in resp.get_json()

    def test_move_persists_card_row(self, client, seed_data, app):
        client.put(
            f"/api/cards/{seed_data['card_b']}/move",
            headers=_auth(seed_data["owner_token"]),
            json={"listId": seed_data["done_id"], "position": 10},
        )
        with app.app_context():
            card = db.session.get(Card, seed_data["card_b"])
            assert (card.list_id, card.position) == (seed_data["done_id"], 10.0)
