"""Lists blueprint — /api/lists/*

Mutations pass the caller's socket session (`X-Socket-ID`) through so the
broadcast skips the tab that made the change.

Route Map:
  POST   /api/lists                 — Create list {boardId, title, position?}
  PUT    /api/lists/<id>            — Rename {title}
  PUT    /api/lists/<id>/move       — Reorder {position} or {index}
  PUT    /api/lists/<id>/archive    — Archive list and its cards
  DELETE /api/lists/<id>            — Archive if it holds cards, else delete
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user

from taskboard.decorators import api_login_required, origin_session
from taskboard.services import list_service, validation
from taskboard.services.serializers import list_dict

lists_bp = Blueprint("lists", __name__, url_prefix="/api/lists")


@lists_bp.route("", methods=["POST"])
@api_login_required
def create_list():
    data = request.get_json(silent=True) or {}
    errors = []
    title = validation.text_field(data, "title", errors, max_length=100, required=True)
    board_id = validation.id_field(data, "boardId", errors)
    position = validation.position_field(data, "position", errors)
    validation.check(errors)

    board_list = list_service.create_list(
        current_user, board_id, title, position=position, origin=origin_session()
    )
    return jsonify(list_dict(board_list, cards=[])), 201


@lists_bp.route("/<list_id>", methods=["PUT"])
@api_login_required
def update_list(list_id):
    data = request.get_json(silent=True) or {}
    errors = []
    title = validation.text_field(data, "title", errors, max_length=100, required=True)
    validation.check(errors)

    board_list = list_service.update_list(current_user, list_id, title, origin=origin_session())
    return jsonify(list_dict(board_list))


@lists_bp.route("/<list_id>/move", methods=["PUT"])
@api_login_required
def move_list(list_id):
    data = request.get_json(silent=True) or {}
    errors = []
    position = validation.position_field(data, "position", errors)
    index = validation.index_field(data, "index", errors)
    if position is None and index is None and not errors:
        errors.append({"field": "position", "message": "Position is required and must be a number"})
    validation.check(errors)

    board_list, rebalanced = list_service.move_list(
        current_user, list_id, position=position, index=index, origin=origin_session()
    )
    result = list_dict(board_list)
    result["rebalanced"] = rebalanced
    return jsonify(result)


@lists_bp.route("/<list_id>/archive", methods=["PUT"])
@api_login_required
def archive_list(list_id):
    board_list = list_service.archive_list(current_user, list_id, origin=origin_session())
    return jsonify(list_dict(board_list))


@lists_bp.route("/<list_id>", methods=["DELETE"])
@api_login_required
def delete_list(list_id):
    outcome = list_service.delete_list(current_user, list_id, origin=origin_session())
    return jsonify({"success": True, "result": outcome})
