from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from momskidz.db.models import Profile
from momskidz.db.session import get_db
from momskidz.models.schemas import UserResponse, UsernameUpdate
from momskidz.services.auth_dependencies import get_current_profile
from momskidz.services.points_service import user_stats
from momskidz.services.profile_service import to_profile_out, update_username

router = APIRouter(prefix="/api", tags=["user"])


@router.get("/user", response_model=UserResponse)
def get_user(
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> UserResponse:
    return UserResponse(profile=to_profile_out(profile), stats=user_stats(db, profile.id))


@router.patch("/user", response_model=UserResponse)
def patch_user(
    payload: UsernameUpdate,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> UserResponse:
    try:
        profile = update_username(db, profile, payload.username)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return UserResponse(profile=to_profile_out(profile), stats=user_stats(db, profile.id))
