from __future__ import annotations

from fastapi import Header

from milo.core.config import settings
from milo.core.errors import AuthError


def check_api_key(x_api_key: str | None) -> None:
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise AuthError("Unauthorized")


def require_user(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str:
    """Resolve the opaque user id forwarded by the session layer."""
    check_api_key(x_api_key)
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AuthError("Unauthorized")
    return user_id
