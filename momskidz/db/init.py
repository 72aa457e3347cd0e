from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from momskidz.db.models import Base, Challenge


logger = structlog.get_logger("db.init")

DEFAULT_CHALLENGES: list[dict[str, Any]] = [
    {
        "title": "Daily Logger",
        "description": "Log at least 3 activities today",
        "type": "daily",
        "points_reward": 50,
        "requirements": {"type": "activity_count", "target": 3, "activity_types": ["all"]},
        "details": {"icon": "clipboard", "category": "engagement"},
    },
    {
        "title": "Photo Collector",
        "description": "Add 5 photos to your activities this week",
        "type": "weekly",
        "points_reward": 100,
        "requirements": {"type": "photo_count", "target": 5, "timeframe": "week"},
        "details": {"icon": "camera", "category": "content"},
    },
    {
        "title": "Milestone Master",
        "description": "Record 3 developmental milestones",
        "type": "special",
        "points_reward": 200,
        "requirements": {"type": "milestone_count", "target": 3, "milestone_types": ["development"]},
        "details": {"icon": "star", "category": "development"},
    },
]


def create_schema(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def seed_challenges(db: Session) -> int:
    """Insert or update the default challenges by title. Returns how many were inserted."""

    inserted = 0
    for data in DEFAULT_CHALLENGES:
        challenge = db.execute(select(Challenge).where(Challenge.title == data["title"])).scalar_one_or_none()
        if challenge is None:
            db.add(Challenge(**data))
            inserted += 1
            continue
        for field, value in data.items():
            setattr(challenge, field, value)
    db.commit()
    return inserted


def initialize_database(engine: Engine) -> int:
    logger.info("db_init_started", url=engine.url.render_as_string(hide_password=True))
    create_schema(engine)
    with Session(engine) as db:
        inserted = seed_challenges(db)
    logger.info("db_init_completed", challenges_inserted=inserted)
    return inserted
