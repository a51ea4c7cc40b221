"""Auth blueprint — /api/auth/*

Open registration and password login, both answering with a signed API
token used as `Authorization: Bearer <token>` on REST calls and as the
socket handshake `auth={"token": ...}`.

Route Map:
  POST /api/auth/register   — Create account, returns {token, user}
  POST /api/auth/login      — Exchange email/password for {token, user}
  POST /api/auth/refresh    — Fresh token for the current user, returns {token}
  GET  /api/auth/me         — Current user
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user
from werkzeug.security import check_password_hash, generate_password_hash

from taskboard.decorators import api_login_required
from taskboard.errors import Unauthorized
from taskboard.extensions import db, limiter
from taskboard.models.user import User
from taskboard.services import token_service, validation
from taskboard.services.serializers import user_dict

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


# ──────────────────────────────────────────────
# POST /api/auth/register
# ──────────────────────────────────────────────

@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per minute")
def register():
    data = request.get_json(silent=True) or {}
    errors = []

    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""
    name = validation.text_field(data, "name", errors, max_length=255, required=True)

    if not email or "@" not in email:
        errors.append({"field": "email", "message": "Valid email is required"})
    if len(password) < 8:
        errors.append({"field": "password", "message": "Password must be at least 8 characters"})
    validation.check(errors)

    if User.query.filter_by(email=email).first():
        return jsonify({"error": "An account with that email already exists"}), 400

    user = User(email=email, name=name, password_hash=generate_password_hash(password))
    db.session.add(user)
    db.session.commit()
    logger.info(f"User registered: {user.id}")

    return jsonify({"token": token_service.issue_token(user), "user": user_dict(user)}), 201


# ──────────────────────────────────────────────
# POST /api/auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if user is None or not check_password_hash(user.password_hash, password):
        logger.info(f"Failed login attempt for {email!r}")
        raise Unauthorized("Invalid email or password")
    if not user.is_active:
        return jsonify({"error": "Account disabled"}), 403

    return jsonify({"token": token_service.issue_token(user), "user": user_dict(user)})


@auth_bp.route("/me")
@api_login_required
def me():
    return jsonify(user_dict(current_user))


@auth_bp.route("/refresh", methods=["POST"])
@api_login_required
def refresh():
    return jsonify({"token": token_service.issue_token(current_user)})
