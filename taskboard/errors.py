"""Error taxonomy for the mutation boundary.

Services raise these; the handlers registered here turn them into JSON
responses with distinct status codes. There is no Conflict error:
concurrent moves resolve as last-write-wins at the persistence layer.
"""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class TaskboardError(Exception):
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {"error": self.message}


class NotFound(TaskboardError):
    """Referenced board/list/card/comment/workspace does not exist."""

    status_code = 404

    def __init__(self, entity, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class Forbidden(TaskboardError):
    """Principal lacks membership or ownership for the board."""

    status_code = 403

    def __init__(self, message="Access denied"):
        super().__init__(message)


class Unauthorized(TaskboardError):
    status_code = 401

    def __init__(self, message="Authentication required"):
        super().__init__(message)


class ValidationFailed(TaskboardError):
    """Malformed input. Carries one entry per offending field."""

    status_code = 400

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [{"field": None, "message": errors}]
        self.errors = list(errors)
        super().__init__("; ".join(e["message"] for e in self.errors))

    def to_dict(self):
        return {"error": "Validation failed", "errors": self.errors}


def register_error_handlers(app):
    """Render every error as JSON."""

    @app.errorhandler(TaskboardError)
    def handle_taskboard_error(e):
        if e.status_code >= 500:
            logger.error(f"Unhandled taskboard error: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Something went wrong"}), 500
