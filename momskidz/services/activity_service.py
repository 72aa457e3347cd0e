from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from momskidz.db.models import Activity, PointsEntry, Profile
from momskidz.gamification.points import activity_points
from momskidz.models.schemas import ActivityOut


logger = structlog.get_logger("activities")


def to_activity_out(activity: Activity) -> ActivityOut:
    return ActivityOut(
        id=str(activity.id),
        type=activity.type,
        title=activity.title,
        description=activity.description,
        occurred_at=activity.occurred_at,
        points_earned=activity.points_earned,
        metadata=activity.details,
        created_at=activity.created_at,
    )


def log_activity(
    db: Session,
    profile: Profile,
    activity_type: str,
    *,
    title: str | None = None,
    description: str | None = None,
    occurred_at: datetime | None = None,
    bonuses: Iterable[str] = (),
    metadata: dict | None = None,
) -> tuple[Activity, PointsEntry]:
    """Store an activity and its points ledger row in one transaction.

    Raises ``ValueError`` for an unknown activity type or bonus before anything is written.
    """

    bonus_list = list(dict.fromkeys(bonuses))
    amount = activity_points(activity_type, bonus_list)

    details = dict(metadata or {})
    if bonus_list:
        details["bonuses"] = bonus_list

    activity = Activity(
        id=uuid.uuid4(),
        user_id=profile.id,
        type=activity_type,
        title=title,
        description=description,
        occurred_at=occurred_at or datetime.now(timezone.utc),
        points_earned=amount,
        details=details or None,
    )
    entry = PointsEntry(
        user_id=profile.id,
        amount=amount,
        type=activity_type,
        description=title or f"Logged {activity_type}",
        details={"activity_id": str(activity.id), "bonuses": bonus_list},
    )
    db.add_all([activity, entry])
    db.commit()
    db.refresh(activity)
    db.refresh(entry)
    logger.info("activity_logged", activity_type=activity_type, points=amount)
    return activity, entry


def list_activities(
    db: Session,
    user_id: str,
    activity_type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Activity]:
    query = select(Activity).where(Activity.user_id == user_id)
    if activity_type and activity_type != "all":
        query = query.where(Activity.type == activity_type)
    query = query.order_by(Activity.occurred_at.desc(), Activity.created_at.desc()).limit(limit).offset(offset)
    return list(db.execute(query).scalars().all())


def get_activity(db: Session, user_id: str, activity_id: str) -> Activity | None:
    try:
        key = uuid.UUID(activity_id)
    except ValueError:
        return None
    return db.execute(
        select(Activity).where(Activity.id == key, Activity.user_id == user_id)
    ).scalar_one_or_none()
