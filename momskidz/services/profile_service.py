from __future__ import annotations

import re

from sqlalchemy import select
from sqlalchemy.orm import Session

from momskidz.db.models import Profile, utcnow
from momskidz.models.schemas import ProfileOut

_USERNAME_RE = re.compile(r"^[A-Za-z0-9._-]{3,32}$")


def derive_username(email: str | None) -> str | None:
    """Default username: the part of ``email`` before the first ``@``."""

    if email is None:
        return None
    return email.split("@", 1)[0]


def to_profile_out(profile: Profile) -> ProfileOut:
    return ProfileOut(
        id=profile.id,
        email=profile.email,
        username=profile.username,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


def get_profile(db: Session, user_id: str) -> Profile | None:
    return db.execute(select(Profile).where(Profile.id == user_id)).scalar_one_or_none()


def create_default_profile(db: Session, user_id: str, email: str | None) -> Profile:
    now = utcnow()
    profile = Profile(
        id=user_id,
        email=email,
        username=derive_username(email),
        created_at=now,
        updated_at=now,
    )
    db.add(profile)
    db.commit()
    return profile


def update_username(db: Session, profile: Profile, username: str) -> Profile:
    cleaned = username.strip()
    if not _USERNAME_RE.match(cleaned):
        raise ValueError("Username must be 3-32 characters of letters, digits, '.', '_' or '-'")

    profile.username = cleaned
    profile.updated_at = utcnow()
    db.commit()
    db.refresh(profile)
    return profile
