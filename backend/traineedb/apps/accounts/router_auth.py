# backend/traineedb/apps/accounts/router_auth.py

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Dict, List, Tuple

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from traineedb.apps.notifications import service as notification_service
from traineedb.database import get_db
from traineedb.security import Principal, get_current_active_principal

from . import models, schemas, services
from .otp import OtpStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_AUTH_RATE_LIMIT_WINDOW_SEC = int(os.getenv("AUTH_RATE_LIMIT_WINDOW_SEC", "900") or "900")
_AUTH_RATE_LIMIT_MAX_ATTEMPTS = int(os.getenv("AUTH_RATE_LIMIT_MAX_ATTEMPTS", "20") or "20")
_RATE_LIMIT_STATE: Dict[Tuple[str, str], List[float]] = {}
_RATE_LIMIT_LOCK = threading.Lock()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _enforce_auth_rate_limit(request: Request, endpoint: str) -> None:
    ip = _client_ip(request)
    now = time.monotonic()
    key = (ip, endpoint)
    with _RATE_LIMIT_LOCK:
        attempts = _RATE_LIMIT_STATE.get(key, [])
        cutoff = now - _AUTH_RATE_LIMIT_WINDOW_SEC
        attempts = [ts for ts in attempts if ts >= cutoff]
        if len(attempts) >= _AUTH_RATE_LIMIT_MAX_ATTEMPTS:
            logger.warning("Auth rate limit hit", extra={"ip": ip, "endpoint": endpoint})
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many attempts. Please retry later.",
            )
        attempts.append(now)
        _RATE_LIMIT_STATE[key] = attempts


def get_otp_store(request: Request) -> OtpStore:
    return request.app.state.otp_store


def _account_read(principal: Principal):
    if principal.role == models.AccountRole.ADMIN:
        return schemas.AdminRead.model_validate(principal.account)
    if principal.role == models.AccountRole.INSTRUCTOR:
        return schemas.InstructorRead.model_validate(principal.account)
    raise ValueError(f"Unhandled role {principal.role!r}")


def _token_response(principal: Principal) -> schemas.Token:
    token, expires_in = services.issue_access_token(principal)
    return schemas.Token(
        access_token=token,
        expires_in=expires_in,
        role=principal.role,
        user=_account_read(principal),
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/login", response_model=schemas.Token)
def login(
    payload: schemas.LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    _enforce_auth_rate_limit(request, "login")
    try:
        principal = services.authenticate(db, login_req=payload)
    except services.AuthenticationError as exc:
        raise _unauthorized(str(exc))
    return _token_response(principal)


@router.post("/send-otp", response_model=schemas.OtpSent)
def send_otp(
    payload: schemas.SendOtpRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    otp_store: OtpStore = Depends(get_otp_store),
):
    _enforce_auth_rate_limit(request, "send-otp")
    account = services.get_account_by_email(db, role=payload.role, email=payload.email)
    if account is None or not account.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    otp_store.purge()
    code = otp_store.issue(role=payload.role, email=account.email, account_id=account.id)
    notification_service.send_email(
        "login_otp",
        account.email,
        "Your login code",
        {"name": account.name, "ttl_minutes": max(otp_store.ttl_seconds // 60, 1)},
        None,
        db=db,
        defer=background_tasks.add_task,
        secret_context={"otp": code},
    )
    db.commit()
    logger.info("Login code issued", extra={"role": payload.role.value, "account_id": account.id})
    return schemas.OtpSent(expires_in=otp_store.ttl_seconds)


@router.post("/verify-otp", response_model=schemas.Token)
def verify_otp(
    payload: schemas.VerifyOtpRequest,
    request: Request,
    db: Session = Depends(get_db),
    otp_store: OtpStore = Depends(get_otp_store),
):
    _enforce_auth_rate_limit(request, "verify-otp")
    entry = otp_store.verify(role=payload.role, email=payload.email, code=payload.otp)
    if entry is None:
        raise _unauthorized("OTP invalid or expired")
    try:
        principal = services.complete_otp_login(db, role=entry.role, account_id=entry.account_id)
    except services.AuthenticationError as exc:
        raise _unauthorized(str(exc))
    return _token_response(principal)


@router.get("/me", response_model=schemas.MeRead)
def me(current_user: Principal = Depends(get_current_active_principal)):
    return schemas.MeRead(role=current_user.role, user=_account_read(current_user))
