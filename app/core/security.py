import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings


logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
ADMIN_COOKIE_NAME = "admin_token"
PARTICIPANT_COOKIE_NAME = "participant_session"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class ParticipantIdentity:
    participant_id: int
    session_id: int
    session_code: str


def hash_passcode(passcode: str) -> str:
    return bcrypt.hashpw(passcode.encode(), bcrypt.gensalt()).decode()


def verify_passcode(passcode: str) -> bool:
    """Сверяем с bcrypt-хешем, если он задан, иначе с открытым ADMIN_PASSCODE за константное время."""
    if settings.ADMIN_PASSCODE_HASH:
        try:
            return bcrypt.checkpw(passcode.encode(), settings.ADMIN_PASSCODE_HASH.encode())
        except ValueError:
            logger.error("ADMIN_PASSCODE_HASH is not a valid bcrypt hash")
            return False
    if not settings.ADMIN_PASSCODE:
        return False
    return hmac.compare_digest(passcode.encode(), settings.ADMIN_PASSCODE.encode())


def passcode_configured() -> bool:
    return bool(settings.ADMIN_PASSCODE_HASH or settings.ADMIN_PASSCODE)


def _encode(data: dict, minutes: int) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None


def create_admin_token() -> str:
    return _encode({"role": "admin"}, settings.ADMIN_TOKEN_EXP_MINUTES)


def create_participant_token(participant_id: int, session_id: int, session_code: str) -> str:
    return _encode(
        {
            "participantId": participant_id,
            "sessionId": session_id,
            "sessionCode": session_code,
        },
        settings.PARTICIPANT_TOKEN_EXP_MINUTES,
    )


def set_auth_cookie(response: Response, name: str, token: str, max_age: int) -> None:
    response.set_cookie(
        name,
        token,
        max_age=max_age,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def _token_from(request: Request, cookie_name: str, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    # cookie в приоритете, Bearer — для не-браузерных клиентов
    token = request.cookies.get(cookie_name)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def is_organizer(request: Request, credentials: HTTPAuthorizationCredentials | None = None) -> bool:
    token = _token_from(request, ADMIN_COOKIE_NAME, credentials)
    if not token:
        return False
    payload = decode_token(token)
    return bool(payload) and payload.get("role") == "admin"


def participant_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = None,
) -> ParticipantIdentity | None:
    token = _token_from(request, PARTICIPANT_COOKIE_NAME, credentials)
    if not token:
        return None
    payload = decode_token(token)
    if not payload:
        return None
    try:
        return ParticipantIdentity(
            participant_id=int(payload["participantId"]),
            session_id=int(payload["sessionId"]),
            session_code=str(payload["sessionCode"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


# ---------- FastAPI dependencies ----------
async def organizer_flag(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> bool:
    return is_organizer(request, credentials)


async def require_organizer(is_admin: bool = Depends(organizer_flag)) -> None:
    if not is_admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Login required",
        )


async def require_participant(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> ParticipantIdentity:
    identity = participant_identity(request, credentials)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid participant session. Please join again.",
        )
    return identity
