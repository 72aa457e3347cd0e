from __future__ import annotations

from typing import Any

import httpx

from momskidz.config import get_settings
from momskidz.models.schemas import AuthSession, AuthUser
from momskidz.observability.backend import instrument_backend_call


class IdentityProviderError(Exception):
    """The identity provider rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"


class IdentityClient:
    """Server-side client for the hosted identity provider's ``/auth/v1`` REST API."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0, http: httpx.Client | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = http or httpx.Client(timeout=timeout)
        self._headers = {"apikey": api_key, "Authorization": f"Bearer {api_key}"}

    def _post(self, path: str, *, params: dict[str, str], json: dict[str, Any]) -> httpx.Response:
        try:
            response = self._http.post(f"{self.base_url}{path}", params=params, json=json, headers=self._headers)
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc
        if response.status_code >= 400:
            raise IdentityProviderError(_error_message(response), status_code=response.status_code)
        return response

    def exchange_code_for_session(self, code: str, code_verifier: str | None = None) -> AuthSession | None:
        """Exchange a one-time authorization code for a session.

        Returns ``None`` when the provider answers successfully but without a
        session or user.
        """

        response = instrument_backend_call(
            operation="auth.exchange_code_for_session",
            fn=lambda: self._post(
                "/token",
                params={"grant_type": "pkce"},
                json={"auth_code": code, "code_verifier": code_verifier or ""},
            ),
        )

        try:
            payload = response.json()
        except ValueError as exc:
            raise IdentityProviderError("Identity provider returned invalid JSON", status_code=response.status_code) from exc

        if not isinstance(payload, dict):
            return None
        user = payload.get("user")
        access_token = payload.get("access_token")
        if not access_token or not isinstance(user, dict) or not user.get("id"):
            return None

        return AuthSession(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            user=AuthUser(id=str(user["id"]), email=user.get("email")),
        )


_client: IdentityClient | None = None


def set_identity_client(client: Any | None) -> None:
    global _client
    _client = client


def get_identity_client() -> IdentityClient:
    global _client
    if _client is None:
        settings = get_settings()
        _client = IdentityClient(
            base_url=settings.auth_url,
            api_key=settings.auth_api_key,
            timeout=settings.auth_timeout_seconds,
        )
    return _client
