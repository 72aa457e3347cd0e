from __future__ import annotations

from fastapi import HTTPException

from momskidz.config import get_settings
from momskidz.observability.metrics import get_metrics


# Mounted at METRICS_PATH by the app factory; the middleware never records it.
async def metrics() -> dict:
    settings = get_settings()
    if not settings.enable_metrics_endpoint:
        raise HTTPException(status_code=404, detail="Not found")
    return get_metrics().snapshot()
