"""Session helpers (issue tokens, cookies, validation)."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request, Response

from syncsketch.core.config import Settings, get_settings
from syncsketch.core.errors import UnauthorizedError
from syncsketch.db.models import User
from syncsketch.repositories.user_repository import UserRepository

SESSION_COOKIE_NAME = "token"
JWT_ALGORITHM = "HS256"


def issue_token(user: User, settings: Settings | None = None) -> str:
    """Sign a token asserting the user's identity."""
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user.id,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(seconds=max(60, settings.jwt_expires_seconds)),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, settings: Settings | None = None) -> dict:
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError("Invalid token") from exc
    if not isinstance(payload.get("userId"), str):
        raise UnauthorizedError("Invalid token payload")
    return payload


def extract_token(request: Request) -> Optional[str]:
    """Bearer header first (a bare token in the header is accepted too), then the cookie."""
    header = (request.headers.get("authorization") or "").strip()
    if header:
        prefix, _, rest = header.partition(" ")
        if prefix.lower() == "bearer" and rest.strip():
            return rest.strip()
        if " " not in header:
            return header
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    return cookie or None


def app_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return getattr(request.app.state, "settings", None) or get_settings()


def current_user(request: Request) -> User:
    """FastAPI dependency resolving the authenticated user on protected routes."""
    settings = app_settings(request)
    token = extract_token(request)
    if not token:
        raise UnauthorizedError("No authentication token provided")
    payload = decode_token(token, settings)
    user = UserRepository(settings.database_url).get_user(payload["userId"])
    if not user:
        raise UnauthorizedError("User not found")
    if user.is_blocked:
        raise UnauthorizedError("User account is blocked")
    return user


CurrentUser = Depends(current_user)


def set_session_cookie(response: Response, token: str, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.jwt_expires_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
