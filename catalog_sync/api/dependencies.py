"""FastAPI dependencies for the admin API."""

import hmac

from fastapi import Depends, Query, Request

from catalog_sync.api.state import AppState
from catalog_sync.errors import ConfigurationError


class Unauthorized(Exception):
    """Caller did not present the shared admin secret."""


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def _presented_token(request: Request, token: str | None) -> str:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return (token or "").strip()


def require_admin(
    request: Request,
    token: str | None = Query(default=None),
    app_state: AppState = Depends(get_app_state),
) -> None:
    """
    Check the bearer header (or `?token=`) against ADMIN_SYNC_TOKEN.

    Raises ConfigurationError when the secret is not configured and
    Unauthorized on mismatch; the app maps both to JSON responses.
    """
    secret = app_state.admin.token
    presented = _presented_token(request, token)
    if not hmac.compare_digest(presented.encode("utf-8"), secret.encode("utf-8")):
        raise Unauthorized()


def require_database(app_state: AppState = Depends(get_app_state)) -> None:
    if not app_state.database.configured:
        raise ConfigurationError("Missing env: DATABASE_URL")
