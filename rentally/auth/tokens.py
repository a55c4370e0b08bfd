from __future__ import annotations

import logging

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .config import DEFAULT_AUTH_CONFIG, AuthConfig

logger = logging.getLogger(__name__)


def _serializer(config: AuthConfig) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(config.secret_key, salt=config.salt)


def issue_token(user_id: str, config: AuthConfig = DEFAULT_AUTH_CONFIG) -> str:
    """Sign a bearer token for ``user_id``. Login itself lives in the user service."""
    return _serializer(config).dumps({"id": user_id})


def read_token(token: str, config: AuthConfig = DEFAULT_AUTH_CONFIG) -> str | None:
    """Return the user id in ``token``, or ``None`` if it is invalid or expired."""
    try:
        payload = _serializer(config).loads(token, max_age=config.max_age_seconds)
    except SignatureExpired:
        logger.info("Rejected expired token")
        return None
    except BadSignature:
        logger.info("Rejected token with bad signature")
        return None
    user_id = payload.get("id") if isinstance(payload, dict) else None
    return str(user_id) if user_id else None
