"""
Bearer token signing with ItsDangerous.

Tokens carry only the user id and are verified against SECRET_KEY with the
configured salt and maximum age.
"""

from typing import Optional

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..utils.logging import get_logger

logger = get_logger("auth.tokens")


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(
        current_app.config['SECRET_KEY'],
        salt=current_app.config.get('AUTH_TOKEN_SALT', 'worktrack-auth'),
    )


def issue_token(user_id: int) -> str:
    """Sign a bearer token for one user."""
    return _serializer().dumps({'uid': user_id})


def verify_token(token: str) -> Optional[int]:
    """
    Return the user id carried by a token, or None when it is invalid.

    Expired and tampered tokens are both rejected; the distinction is only
    logged.
    """
    max_age = current_app.config.get('AUTH_TOKEN_MAX_AGE', 3600)
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        logger.info("Bearer token expired")
        return None
    except BadSignature:
        logger.warning("Bearer token signature invalid")
        return None

    user_id = payload.get('uid') if isinstance(payload, dict) else None
    return user_id if isinstance(user_id, int) else None
