"""
Registration, login and password reset.
"""

from __future__ import annotations

import logging
import secrets
import time

from fastapi import APIRouter, Depends, HTTPException, Response

from bikerental.auth import (
    AUTH_COOKIE,
    ROLE_COOKIE,
    TOKEN_COOKIE,
    create_access_token,
    hash_password,
    verify_password,
    verify_recaptcha,
)
from bikerental.config import Settings, get_settings
from bikerental.db import ActivityLogRecord, DbClient, UserRecord
from bikerental.dependencies import get_db_client, get_queue_client
from bikerental.notifications import enqueue_job
from bikerental.queue import JobQueue
from bikerental.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserSummary,
)
from bikerental.types import JobKind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_TOKEN_TTL_SECONDS = 60 * 60
FORGOT_PASSWORD_MESSAGE = "If this email is registered, a reset link has been sent."


@router.post("/register", response_model=MessageResponse)
def register(payload: RegisterRequest, db: DbClient = Depends(get_db_client)):
    email = payload.email.strip()
    if not payload.full_name.strip() or not email or not payload.role.strip():
        raise HTTPException(status_code=400, detail="All fields are required")
    if db.get_user_by_email(email):
        raise HTTPException(status_code=409, detail="Email already registered")
    db.create_user(
        UserRecord(
            name=payload.full_name.strip(),
            email=email,
            password_hash=hash_password(payload.password),
            role=payload.role.strip().lower(),
        )
    )
    return MessageResponse(message="Registration successful")


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    response: Response,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    if settings.recaptcha_secret_key:
        if not payload.recaptcha_token:
            raise HTTPException(status_code=400, detail="Missing reCAPTCHA token")
        if not verify_recaptcha(settings.recaptcha_secret_key, payload.recaptcha_token):
            raise HTTPException(status_code=400, detail="reCAPTCHA verification failed")

    user = db.get_user_by_email(payload.username.strip())
    if user is None or not verify_password(user.password_hash, payload.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if user.role == "admin":
        db.add_activity_log(
            ActivityLogRecord(
                type="Login",
                admin_name=user.name or "",
                admin_email=user.email,
                description="Admin logged in",
            )
        )

    token = create_access_token(user.id, user.email, user.role, settings)
    max_age = settings.jwt_expires_minutes * 60
    response.set_cookie(
        AUTH_COOKIE,
        token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
    response.set_cookie(
        ROLE_COOKIE,
        user.role,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
    logger.info("User %s logged in", user.id)
    return LoginResponse(
        message="Login successful",
        user=UserSummary(id=user.id, name=user.name, email=user.email, role=user.role),
        token=token,
    )


@router.post("/logout")
def logout(response: Response):
    for name in (AUTH_COOKIE, ROLE_COOKIE, TOKEN_COOKIE):
        response.delete_cookie(name, path="/")
    return {"ok": True}


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    email = payload.email.strip()
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")
    user = db.get_user_by_email(email)
    if user is None:
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    token = secrets.token_hex(32)
    db.update_user(
        user.id,
        password_reset_token=token,
        password_reset_expiry=time.time() + RESET_TOKEN_TTL_SECONDS,
    )
    enqueue_job(
        db,
        queue,
        JobKind.PASSWORD_RESET_EMAIL,
        {"email": user.email, "token": token},
    )
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: DbClient = Depends(get_db_client)):
    user = db.get_user_by_reset_token(payload.token.strip())
    expiry = user.password_reset_expiry if user else None
    if user is None or not expiry or expiry < time.time():
        raise HTTPException(status_code=400, detail="Invalid or expired token")
    db.update_user(
        user.id,
        password_hash=hash_password(payload.password),
        password_reset_token=None,
        password_reset_expiry=None,
    )
    return MessageResponse(message="Password has been reset. You can now log in.")
