"""Boards blueprint — /api/boards/*

Route Map:
  GET  /api/boards                    — Boards the current user belongs to
  POST /api/boards                    — Create board (seeded with default lists)
  GET  /api/boards/<id>               — Full board: lists + cards by position
  POST /api/boards/<id>/members       — Add member {userId, role}
  GET  /api/boards/<id>/activities    — Activity feed ?filter=&limit=&page=
  POST /api/boards/<id>/labels        — Define label {name, color}
  GET  /api/boards/<id>/search        — Cards ?q=&labels=a,b&assignees=u,v&dueDate=overdue|today|week
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from taskboard.decorators import api_login_required
from taskboard.models.activity import Activity
from taskboard.models.board import Board
from taskboard.services import board_service, validation
from taskboard.services.serializers import board_dict, member_dict

boards_bp = Blueprint("boards", __name__, url_prefix="/api/boards")


@boards_bp.route("", methods=["GET"])
@api_login_required
def list_boards():
    return jsonify([board_dict(b) for b in board_service.list_boards(current_user)])


@boards_bp.route("", methods=["POST"])
@api_login_required
def create_board():
    data = request.get_json(silent=True) or {}
    errors = []
    title = validation.text_field(data, "title", errors, max_length=100, required=True)
    description = validation.text_field(data, "description", errors, max_length=500)
    workspace_id = validation.id_field(data, "workspaceId", errors)
    visibility = validation.choice_field(
        data, "visibility", errors, Board.VISIBILITIES, default="workspace"
    )
    background = validation.text_field(data, "background", errors, max_length=20)
    validation.check(errors)

    board = board_service.create_board(
        current_user, workspace_id, title,
        description=description, visibility=visibility, background=background,
    )
    return jsonify(board_service.get_board_detail(current_user, board.id)), 201


@boards_bp.route("/<board_id>", methods=["GET"])
@api_login_required
def get_board(board_id):
    return jsonify(board_service.get_board_detail(current_user, board_id))


@boards_bp.route("/<board_id>/members", methods=["POST"])
@api_login_required
def add_member(board_id):
    data = request.get_json(silent=True) or {}
    errors = []
    user_id = validation.id_field(data, "userId", errors)
    role = validation.choice_field(
        data, "role", errors, board_service.MEMBER_ROLES, default="member"
    )
    validation.check(errors)

    member = board_service.add_member(current_user, board_id, user_id, role)
    return jsonify(member_dict(member)), 201


@boards_bp.route("/<board_id>/activities", methods=["GET"])
@api_login_required
def list_activities(board_id):
    activity_filter = request.args.get("filter", "all")
    if activity_filter != "all" and activity_filter not in Activity.FILTERS:
        activity_filter = "all"
    limit = request.args.get("limit", current_app.config.get("ACTIVITY_PAGE_SIZE", 50), type=int)
    page = request.args.get("page", 1, type=int)

    activities = board_service.list_activities(
        current_user, board_id, activity_filter, limit=limit, page=page
    )
    return jsonify({"activities": activities, "page": page, "filter": activity_filter})


@boards_bp.route("/<board_id>/labels", methods=["POST"])
@api_login_required
def add_label(board_id):
    data = request.get_json(silent=True) or {}
    errors = []
    name = validation.text_field(data, "name", errors, max_length=50, required=True)
    color = validation.color_field(data, "color", errors)
    validation.check(errors)

    return jsonify(board_service.add_label(current_user, board_id, name, color)), 201


def _csv_arg(name):
    raw = request.args.get(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


@boards_bp.route("/<board_id>/search", methods=["GET"])
@api_login_required
def search_cards(board_id):
    due = request.args.get("dueDate") or None
    if due is not None and due not in board_service.DUE_FILTERS:
        return jsonify({
            "error": f"Invalid dueDate '{due}'. Must be one of: {', '.join(board_service.DUE_FILTERS)}"
        }), 400

    cards = board_service.search_cards(
        current_user, board_id,
        query=validation.sanitize(request.args.get("q")) or None,
        labels=_csv_arg("labels"),
        assignees=_csv_arg("assignees"),
        due=due,
    )
    return jsonify(cards)
