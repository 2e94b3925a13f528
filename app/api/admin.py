import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import rate_limited
from app.core.config import settings
from app.core.db import get_session
from app.core.security import (
    ADMIN_COOKIE_NAME,
    create_admin_token,
    organizer_flag,
    passcode_configured,
    set_auth_cookie,
    verify_passcode,
)
from app.schemas.quiz import LoginIn
from app.services.rate_limit import reset_rate_limit


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login")
async def login(
    payload: LoginIn,
    response: Response,
    ip: str = Depends(rate_limited("login")),
    session: AsyncSession = Depends(get_session),
):
    if not passcode_configured():
        logger.error("ADMIN_PASSCODE is not configured")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server configuration is incomplete")

    if not verify_passcode(payload.passcode):
        logger.warning("Failed organizer login from %s", ip)
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid passcode")

    # успешный вход не должен съедать попытки
    await reset_rate_limit(session, "login", ip)

    token = create_admin_token()
    set_auth_cookie(response, ADMIN_COOKIE_NAME, token, settings.ADMIN_TOKEN_EXP_MINUTES * 60)
    return {"success": True, "token": token}


@router.get("/verify")
async def verify(is_admin: bool = Depends(organizer_flag)):
    if not is_admin:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not authenticated")
    return {"authenticated": True}


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(ADMIN_COOKIE_NAME, path="/")
    return {"success": True}
