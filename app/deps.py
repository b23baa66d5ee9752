"""Shared FastAPI dependencies."""

from functools import lru_cache

from fastapi import Header, Request

from app.core.config import get_settings
from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.security import extract_bearer, load_session_cookie, secrets_match
from app.services.dispatcher import NotificationDispatcher
from app.services.factory import build_dispatcher, build_sweeper
from app.services.sweep import StallSweeper

SESSION_COOKIE_NAME = "hc_admin_session"


async def require_admin(request: Request) -> dict:
    """Dependency: signed admin session cookie; returns its payload."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if not cookie:
        raise UnauthorizedError("Not authenticated")
    payload = load_session_cookie(cookie)
    if not payload:
        raise UnauthorizedError("Invalid or expired session")
    if payload.get("role") != "admin":
        raise ForbiddenError("Admin only")
    return payload


async def require_api_key(
    x_api_key: str | None = Header(None, alias="X-API-Key"),
    authorization: str | None = Header(None),
) -> None:
    """Dependency: mobile app API key via X-API-Key or Authorization: Bearer."""
    provided = x_api_key or extract_bearer(authorization)
    if not secrets_match(provided, get_settings().app_api_key):
        raise UnauthorizedError("Unauthorized. Valid API key required.")


async def require_cron_secret(
    x_cron_secret: str | None = Header(None, alias="X-Cron-Secret"),
    authorization: str | None = Header(None),
) -> None:
    """Dependency: shared cron secret. Skipped only when ENV=development is set explicitly."""
    settings = get_settings()
    if settings.is_development:
        return
    provided = x_cron_secret or extract_bearer(authorization)
    if not secrets_match(provided, settings.cron_secret):
        raise UnauthorizedError("Unauthorized. Valid CRON_SECRET required.")


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    return build_dispatcher()


def get_sweeper() -> StallSweeper:
    return build_sweeper(get_dispatcher())
