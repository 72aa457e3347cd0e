from __future__ import annotations

from typing import Any

import jwt

from momskidz.config import get_settings


def decode_session_token(token: str) -> dict[str, Any]:
    """Verify an access token issued by the identity provider (HS256, shared JWT secret)."""

    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"], audience=settings.jwt_audience)
