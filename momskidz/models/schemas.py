from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AuthUser(BaseModel):
    id: str
    email: str | None = None


class AuthSession(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    user: AuthUser


class ProfileOut(BaseModel):
    id: str
    email: str | None
    username: str | None
    created_at: datetime
    updated_at: datetime


class UserStats(BaseModel):
    total_points: int
    level: int
    points_to_next_level: int | None
    entries: int


class UserResponse(BaseModel):
    profile: ProfileOut
    stats: UserStats


class UsernameUpdate(BaseModel):
    username: str = Field(min_length=1)


class ActivityCreate(BaseModel):
    type: str = Field(min_length=1)
    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    occurred_at: datetime | None = None
    bonuses: list[str] = Field(default_factory=list)
    metadata: dict | None = None


class ActivityOut(BaseModel):
    id: str
    type: str
    title: str | None
    description: str | None
    occurred_at: datetime
    points_earned: int
    metadata: dict | None
    created_at: datetime


class ActivitiesResponse(BaseModel):
    activities: list[ActivityOut]


class PointsEntryOut(BaseModel):
    id: str
    amount: int
    type: str
    description: str | None
    metadata: dict | None
    created_at: datetime


class ActivityLogResponse(BaseModel):
    activity: ActivityOut
    points_entry: PointsEntryOut
    stats: UserStats
