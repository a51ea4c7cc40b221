"""Cards blueprint — /api/cards/*

Route Map:
  POST   /api/cards                   — Create card {listId, title, description?, position?}
  GET    /api/cards/<id>              — Card with recent activity
  PUT    /api/cards/<id>              — Update title/description/dueDate/completed/labels/assignees
  PUT    /api/cards/<id>/move         — Move {listId?, position} or {listId?, index}
  DELETE /api/cards/<id>              — Delete card (200 even if already gone)
  GET    /api/cards/<id>/activities   — Card activity, newest first ?limit=
  GET    /api/cards/<id>/comments     — Comments, oldest first
  POST   /api/cards/<id>/comments     — Add comment {text}
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user

from taskboard.decorators import api_login_required, origin_session
from taskboard.services import card_service, comment_service, validation
from taskboard.services.serializers import card_dict, comment_dict

cards_bp = Blueprint("cards", __name__, url_prefix="/api/cards")


@cards_bp.route("", methods=["POST"])
@api_login_required
def create_card():
    data = request.get_json(silent=True) or {}
    errors = []
    title = validation.text_field(data, "title", errors, max_length=200, required=True)
    description = validation.text_field(data, "description", errors, max_length=2000)
    list_id = validation.id_field(data, "listId", errors)
    position = validation.position_field(data, "position", errors)
    validation.check(errors)

    card = card_service.create_card(
        current_user, list_id, title,
        description=description, position=position, origin=origin_session(),
    )
    return jsonify(card_dict(card)), 201


@cards_bp.route("/<card_id>", methods=["GET"])
@api_login_required
def get_card(card_id):
    return jsonify(card_service.get_card_detail(current_user, card_id))


@cards_bp.route("/<card_id>", methods=["PUT"])
@api_login_required
def update_card(card_id):
    data = request.get_json(silent=True) or {}
    errors = []
    updates = {}

    if "title" in data:
        updates["title"] = validation.text_field(
            data, "title", errors, max_length=200, required=True
        )
    if "description" in data:
        updates["description"] = validation.text_field(
            data, "description", errors, max_length=2000
        ) or ""
    if "dueDate" in data:
        updates["due_date"] = validation.datetime_field(data, "dueDate", errors)
    if "completed" in data:
        updates["completed"] = validation.bool_field(data, "completed", errors)
    for field in ("labels", "assignees"):
        if field in data:
            updates[field] = validation.id_list_field(data, field, errors)
    if "position" in data or "listId" in data:
        errors.append({"field": "position", "message": "Use /move to change a card's position"})
    if not updates and not errors:
        errors.append({"field": None, "message": "No updatable fields supplied"})
    validation.check(errors)

    card = card_service.update_card(current_user, card_id, updates, origin=origin_session())
    return jsonify(card_dict(card))


@cards_bp.route("/<card_id>/move", methods=["PUT"])
@api_login_required
def move_card(card_id):
    data = request.get_json(silent=True) or {}
    errors = []
    list_id = validation.id_field(data, "listId", errors, required=False)
    position = validation.position_field(data, "position", errors)
    index = validation.index_field(data, "index", errors)
    if position is None and index is None and not errors:
        errors.append({"field": "position", "message": "Position is required and must be a number"})
    validation.check(errors)

    card, rebalanced = card_service.move_card(
        current_user, card_id,
        list_id=list_id, position=position, index=index, origin=origin_session(),
    )
    result = card_dict(card)
    result["rebalanced"] = rebalanced
    return jsonify(result)


@cards_bp.route("/<card_id>", methods=["DELETE"])
@api_login_required
def delete_card(card_id):
    deleted = card_service.delete_card(current_user, card_id, origin=origin_session())
    return jsonify({"success": True, "deleted": deleted})


@cards_bp.route("/<card_id>/activities", methods=["GET"])
@api_login_required
def list_activities(card_id):
    limit = request.args.get("limit", 20, type=int)
    limit = max(1, min(limit, 100))
    return jsonify(card_service.list_card_activities(current_user, card_id, limit))


# ─── Comments ────────────────────────────────────────────────────

@cards_bp.route("/<card_id>/comments", methods=["GET"])
@api_login_required
def list_comments(card_id):
    comments = comment_service.list_comments(current_user, card_id)
    return jsonify([comment_dict(c) for c in comments])


@cards_bp.route("/<card_id>/comments", methods=["POST"])
@api_login_required
def add_comment(card_id):
    data = request.get_json(silent=True) or {}
    errors = []
    text = validation.text_field(data, "text", errors, max_length=1000, required=True)
    validation.check(errors)

    comment = comment_service.add_comment(current_user, card_id, text, origin=origin_session())
    return jsonify(comment_dict(comment)), 201
