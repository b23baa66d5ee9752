from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from app.core.config import get_settings
from app.core.exceptions import UnauthorizedError
from app.core.security import SESSION_MAX_AGE, create_session_cookie, secrets_match
from app.deps import SESSION_COOKIE_NAME, require_admin

router = APIRouter()


class AdminSessionRequest(BaseModel):
    secret_key: str


@router.post("/session")
async def auth_session(body: AdminSessionRequest, response: Response):
    """Exchange the admin secret key for a session; set httpOnly cookie."""
    settings = get_settings()
    if not secrets_match(body.secret_key, settings.admin_secret_key):
        raise UnauthorizedError("Invalid secret key")
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=create_session_cookie({"role": "admin"}),
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
        path="/",
    )
    return {"success": True}


@router.post("/logout")
async def auth_logout(response: Response):
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")
    return {"success": True}


@router.get("/me")
async def auth_me(session: dict = Depends(require_admin)):
    return {"role": session.get("role")}
