"""
Session authentication.

The session cookie carries a signed JWT with the user's id, username and
full name. Handlers receive an explicit ``AuthContext`` through the
``get_auth_context`` dependency instead of looking the session up themselves.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Request, Response
from passlib.context import CryptContext

from ..domain.errors import AuthenticationRequired
from ..domain.models import User
from ..infrastructure.config.settings import AuthSettings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller of one request."""
    user_id: str
    username: str
    full_name: Optional[str] = None

    def owns(self, owner_id: str) -> bool:
        return self.user_id == owner_id

    def to_json(self) -> dict:
        return {"id": self.user_id, "username": self.username, "fullName": self.full_name}


def create_session_token(user: User, settings: AuthSettings, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "username": user.username,
        "fullName": user.full_name,
        "iat": now,
        "exp": now + timedelta(days=settings.session_days),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.algorithm)


def decode_session_token(token: str, settings: AuthSettings) -> AuthContext:
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[settings.algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationRequired("Session expired. Please log in again.")
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected session token: {e}")
        raise AuthenticationRequired("Invalid session.")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationRequired("Invalid session.")
    return AuthContext(
        user_id=user_id,
        username=payload.get("username") or "",
        full_name=payload.get("fullName"),
    )


def get_auth_context(request: Request) -> AuthContext:
    """FastAPI dependency: 401 unless a valid session cookie is present."""
    settings = request.app.state.settings.auth
    token = request.cookies.get(settings.cookie_name)
    if not token:
        raise AuthenticationRequired()
    return decode_session_token(token, settings)


def set_session_cookie(response: Response, token: str, settings: AuthSettings):
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.session_days * 24 * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def clear_session_cookie(response: Response, settings: AuthSettings):
    response.delete_cookie(settings.cookie_name)
