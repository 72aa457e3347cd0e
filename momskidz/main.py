from __future__ import annotations

from fastapi import FastAPI

from momskidz.api.activities import router as activities_router
from momskidz.api.auth import router as auth_router
from momskidz.api.health import health
from momskidz.api.metrics import metrics
from momskidz.api.user import router as user_router
from momskidz.config import get_settings
from momskidz.observability.logging import configure_logging
from momskidz.observability.middleware import RequestContextMiddleware


settings = get_settings()

app = FastAPI(title="Mom's Kidz API", version="0.1.0")
app.add_middleware(RequestContextMiddleware)

# Route table: every endpoint the service exposes is registered here.
app.include_router(auth_router)
app.include_router(user_router)
app.include_router(activities_router)
app.add_api_route(settings.metrics_path, metrics, methods=["GET"], tags=["ops"])
app.add_api_route(settings.health_path, health, methods=["GET"], tags=["ops"])


@app.on_event("startup")
def _startup() -> None:
    configure_logging(get_settings().log_level)
