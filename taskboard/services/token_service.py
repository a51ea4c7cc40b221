"""API token service — signed bearer tokens for REST and socket auth.

Tokens are `itsdangerous` timed signatures over the user id, keyed by
SECRET_KEY. Nothing is stored server-side; rotating SECRET_KEY revokes
every outstanding token.
"""

import logging

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from taskboard.extensions import db

logger = logging.getLogger(__name__)

_SALT = "taskboard-api-token"


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_SALT)


def issue_token(user):
    """Return a signed token identifying `user`."""
    return _serializer().dumps({"uid": user.id})


def user_for_token(token):
    """Resolve a token to an active User, or None if invalid/expired."""
    from taskboard.models.user import User

    if not token:
        return None
    try:
        data = _serializer().loads(
            token, max_age=current_app.config.get("TOKEN_MAX_AGE", 3600)
        )
    except SignatureExpired:
        logger.info("Rejected expired API token")
        return None
    except BadSignature:
        logger.warning("Rejected API token with bad signature")
        return None

    user = db.session.get(User, data.get("uid"))
    if user is None or not user.is_active:
        return None
    return user
