"""
Custom route decorators and request helpers for the JSON API.

- api_login_required: ensures the request carries a valid session or
  `Authorization: Bearer <token>` (resolved by the login manager's
  request_loader) and answers 401 JSON otherwise.
- origin_session: the caller's socket session id from `X-Socket-ID`.
"""

from functools import wraps

from flask import jsonify, request
from flask_login import current_user


def api_login_required(f):
    """Require an authenticated, active user."""

    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"error": "Authentication required"}), 401
        if not current_user.is_active:
            return jsonify({"error": "Account disabled"}), 403
        return f(*args, **kwargs)

    return decorated


def origin_session():
    """Socket session that originated this request, if the client sent one."""
    sid = request.headers.get("X-Socket-ID", "").strip()
    return sid or None
