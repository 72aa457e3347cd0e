from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from momskidz.db.models import Profile
from momskidz.db.session import get_db
from momskidz.models.schemas import ActivitiesResponse, ActivityCreate, ActivityLogResponse, ActivityOut
from momskidz.services.activity_service import get_activity, list_activities, log_activity, to_activity_out
from momskidz.services.auth_dependencies import get_current_profile
from momskidz.services.points_service import to_entry_out, user_stats

router = APIRouter(prefix="/api", tags=["activities"])


@router.post("/activities", response_model=ActivityLogResponse, status_code=201)
def create_activity(
    payload: ActivityCreate,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> ActivityLogResponse:
    try:
        activity, entry = log_activity(
            db,
            profile,
            payload.type,
            title=payload.title,
            description=payload.description,
            occurred_at=payload.occurred_at,
            bonuses=payload.bonuses,
            metadata=payload.metadata,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ActivityLogResponse(
        activity=to_activity_out(activity),
        points_entry=to_entry_out(entry),
        stats=user_stats(db, profile.id),
    )


@router.get("/activities", response_model=ActivitiesResponse)
def get_activities(
    type: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> ActivitiesResponse:
    rows = list_activities(db, profile.id, activity_type=type, limit=limit, offset=offset)
    return ActivitiesResponse(activities=[to_activity_out(row) for row in rows])


@router.get("/activities/{activity_id}", response_model=ActivityOut)
def get_activity_by_id(
    activity_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> ActivityOut:
    activity = get_activity(db, profile.id, activity_id)
    if activity is None:
        raise HTTPException(status_code=404, detail="Activity not found")
    return to_activity_out(activity)
