from __future__ import annotations

from pathlib import Path
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from momskidz.config import get_settings
from momskidz.db.session import get_db
from momskidz.observability.metrics import get_metrics
from momskidz.services.identity_client import get_identity_client
from momskidz.services.session_bootstrap import BootstrapOutcome, bootstrap_session

router = APIRouter(tags=["auth"])
templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))

logger = structlog.get_logger("auth.callback")


def _origin(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@router.get("/auth/callback")
def auth_callback(
    request: Request,
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    db: Session = Depends(get_db),
) -> RedirectResponse:
    settings = get_settings()
    origin = _origin(request)

    if error:
        logger.warning("auth_provider_error", error=error, error_description=error_description)
        get_metrics().observe_auth(BootstrapOutcome.PROVIDER_ERROR.value)
        query = urlencode({"error": error_description or error})
        return RedirectResponse(url=f"{origin}{settings.auth_error_path}?{query}", status_code=302)

    code_verifier = request.cookies.get(settings.auth_code_verifier_cookie)
    result = bootstrap_session(
        db=db,
        identity=get_identity_client(),
        code=code,
        code_verifier=code_verifier,
    )

    response = RedirectResponse(url=f"{origin}{result.redirect_path}", status_code=302)
    if result.session is not None:
        response.set_cookie(
            key=settings.session_cookie_name,
            value=result.session.access_token,
            max_age=result.session.expires_in,
            httponly=True,
            secure=settings.session_cookie_secure,
            samesite="lax",
            path="/",
        )
    if code_verifier is not None:
        response.delete_cookie(settings.auth_code_verifier_cookie, path="/")
    return response


@router.get("/auth/error", response_class=HTMLResponse)
async def auth_error_page(request: Request, error: str | None = None, message: str | None = None) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "auth_error.html",
        {"message": message or error or "An error occurred during authentication"},
    )
