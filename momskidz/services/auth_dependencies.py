from __future__ import annotations

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from momskidz.config import get_settings
from momskidz.db.models import Profile
from momskidz.db.session import get_db
from momskidz.services.auth_service import decode_session_token
from momskidz.services.profile_service import get_profile


def get_current_profile(request: Request, db: Session = Depends(get_db)) -> Profile:
    settings = get_settings()
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid session") from exc

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid session")

    profile = get_profile(db, str(user_id))
    if profile is None:
        raise HTTPException(status_code=401, detail="Profile not found")

    structlog.contextvars.bind_contextvars(user_id=profile.id)
    return profile
