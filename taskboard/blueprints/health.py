"""Health blueprint — /api/health

Liveness for load balancers: database reachable, hub size.
"""

import logging

from flask import Blueprint, jsonify
from sqlalchemy import text

from taskboard.extensions import db, hub

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api")


@health_bp.route("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check: database unreachable: {e}")
        return jsonify({"status": "error", "database": "unreachable"}), 503
    return jsonify({"status": "ok", "database": "ok", "sessions": hub.session_count()})
