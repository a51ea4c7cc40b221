"""Users blueprint — /api/users/*

Lookup for the member picker and the signed-in user's own profile.

Route Map:
  GET  /api/users/search?q=   — Users whose name or email contains q (min 2 chars, max 10 results)
  GET  /api/users/profile     — Current user's profile
  PUT  /api/users/profile     — Update name and/or avatar
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user
from sqlalchemy import or_

from taskboard.decorators import api_login_required
from taskboard.extensions import db
from taskboard.models.user import User
from taskboard.services import validation
from taskboard.services.serializers import user_dict

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")

SEARCH_LIMIT = 10


@users_bp.route("/search")
@api_login_required
def search():
    query = validation.sanitize(request.args.get("q", "")) or ""
    if len(query) < 2:
        return jsonify({"error": "Search query must be at least 2 characters"}), 400

    pattern = f"%{query}%"
    users = (
        User.query
        .filter(User.is_active == True)  # noqa: E712
        .filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        .order_by(User.name)
        .limit(SEARCH_LIMIT)
        .all()
    )
    return jsonify([user_dict(u) for u in users])


# ──────────────────────────────────────────────
# /api/users/profile
# ──────────────────────────────────────────────

@users_bp.route("/profile")
@api_login_required
def get_profile():
    return jsonify(user_dict(current_user))


@users_bp.route("/profile", methods=["PUT"])
@api_login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    errors = []
    name = validation.text_field(data, "name", errors, max_length=255)
    avatar = validation.text_field(data, "avatar", errors, max_length=500)
    if name is not None and len(name) < 2:
        errors.append({"field": "name", "message": "Name must be at least 2 characters"})
    validation.check(errors)

    user = db.session.get(User, current_user.id)
    if name is not None:
        user.name = name
    if "avatar" in data:
        user.avatar = avatar or None
    db.session.commit()
    logger.info(f"Profile updated: {user.id}")
    return jsonify(user_dict(user))
