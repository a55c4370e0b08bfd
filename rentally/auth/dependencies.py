from __future__ import annotations

from fastapi import HTTPException, Request

from .config import DEFAULT_AUTH_CONFIG
from .tokens import read_token


def _token_from(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return request.cookies.get(DEFAULT_AUTH_CONFIG.cookie_name)


def get_current_user_id(request: Request) -> str | None:
    """Return the authenticated user id, or ``None``. Never fails the request."""
    token = _token_from(request)
    if not token:
        return None
    return read_token(token)


def require_user_id(request: Request) -> str:
    """Raise 401 if the request carries no valid token."""
    user_id = get_current_user_id(request)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not Authorized")
    return user_id
