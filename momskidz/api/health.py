from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from momskidz.db.session import get_db


def health(db: Session = Depends(get_db)) -> JSONResponse:
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        structlog.get_logger("health").exception("health_check_failed")
        return JSONResponse(
            {"status": "unhealthy", "timestamp": timestamp, "error": "Service unavailable"},
            status_code=503,
            headers={"Cache-Control": "no-store"},
        )

    return JSONResponse(
        {
            "status": "healthy",
            "timestamp": timestamp,
            "services": {"database": "connected", "api": "running"},
        },
        headers={
            "Cache-Control": "public, max-age=5",
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
        },
    )
