from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from momskidz.db.models import PointsEntry
from momskidz.gamification.points import calculate_level, points_to_next_level
from momskidz.models.schemas import PointsEntryOut, UserStats


def to_entry_out(entry: PointsEntry) -> PointsEntryOut:
    return PointsEntryOut(
        id=str(entry.id),
        amount=entry.amount,
        type=entry.type,
        description=entry.description,
        metadata=entry.details,
        created_at=entry.created_at,
    )


def user_stats(db: Session, user_id: str) -> UserStats:
    total, entries = db.execute(
        select(func.coalesce(func.sum(PointsEntry.amount), 0), func.count(PointsEntry.id)).where(
            PointsEntry.user_id == user_id
        )
    ).one()
    total = int(total)
    return UserStats(
        total_points=total,
        level=calculate_level(total),
        points_to_next_level=points_to_next_level(total),
        entries=int(entries),
    )
