"""
Authentication helpers: password hashing, JWT sessions, role checks and
reCAPTCHA verification.

The session token travels in the `auth` cookie or an
`Authorization: Bearer` header.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests
from fastapi import Depends, HTTPException, Query, Request
from jose import JWTError, jwt
from werkzeug.security import check_password_hash, generate_password_hash

from bikerental.config import Settings, get_settings

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth"
ROLE_COOKIE = "role"
TOKEN_COOKIE = "token"
RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


@dataclass
class AuthUser:
    id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role.lower() == "admin"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def create_access_token(
    user_id: str, email: str, role: str, settings: Settings, now: Optional[float] = None
) -> str:
    issued = int(now if now is not None else time.time())
    claims = {
        "id": user_id,
        "email": email,
        "role": role,
        "iat": issued,
        "exp": issued + settings.jwt_expires_minutes * 60,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> Optional[AuthUser]:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    user_id = claims.get("id")
    if not user_id:
        return None
    return AuthUser(
        id=str(user_id),
        email=str(claims.get("email") or ""),
        role=str(claims.get("role") or ""),
    )


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_optional_user(
    request: Request, settings: Settings = Depends(get_settings)
) -> Optional[AuthUser]:
    for token in (request.cookies.get(AUTH_COOKIE), bearer_token(request)):
        user = decode_access_token(token, settings) if token else None
        if user is not None:
            return user
    return None


def get_current_user(user: Optional[AuthUser] = Depends(get_optional_user)) -> AuthUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_role(*roles: str) -> Callable[..., AuthUser]:
    allowed = {r.lower() for r in roles}

    def dependency(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if allowed and user.role.lower() not in allowed:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return dependency


require_admin = require_role("admin")


def require_admin_or_notify_secret(
    request: Request,
    user: Optional[AuthUser] = Depends(get_optional_user),
    settings: Settings = Depends(get_settings),
) -> Optional[AuthUser]:
    """Admin session, or a server-to-server call bearing the notify secret."""
    if user is not None and user.is_admin:
        return user
    secret = settings.notify_api_secret
    if secret and bearer_token(request) == secret:
        return None
    if user is not None:
        raise HTTPException(status_code=403, detail="Forbidden")
    raise HTTPException(status_code=401, detail="Unauthorized")


def resolve_identity(
    user: Optional[AuthUser] = Depends(get_optional_user),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    email: Optional[str] = Query(default=None),
) -> AuthUser:
    """
    Session user, falling back to `userId`/`email` query hints for clients
    whose cookies are blocked cross-site.
    """
    if user is not None:
        return user
    if not user_id and not email:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return AuthUser(id=user_id or "", email=email or "", role="student")


def verify_recaptcha(
    secret: str, token: str, session: Optional[requests.Session] = None
) -> bool:
    http = session or requests
    try:
        response = http.post(
            RECAPTCHA_VERIFY_URL,
            data={"secret": secret, "response": token},
            timeout=10,
        )
        response.raise_for_status()
        return bool(response.json().get("success"))
    except (requests.RequestException, ValueError) as exc:
        logger.warning("reCAPTCHA verification failed: %s", exc)
        return False
