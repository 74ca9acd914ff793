from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from backend.app.api.deps import (
    client_ip,
    get_current_user,
    get_lockout_policy,
    get_login_limiter,
    get_now,
    oauth2_scheme,
)
from backend.app.core.database import get_db
from backend.app.core.security import create_access_token, decode_access_token, revoke_token
from backend.app.middleware.rate_limit import InMemoryRateLimiter
from backend.app.models.user import User
from backend.app.schemas.auth import (
    ForgotPasswordIn,
    LockoutInfoOut,
    MessageOut,
    ResetPasswordIn,
    SignupIn,
    TokenOut,
    UserOut,
)
from backend.app.services.accounts import (
    SignInStatus,
    authenticate,
    get_public_lockout_info,
    register_user,
    request_password_reset,
    reset_password,
)
from backend.app.services.lockout import LockoutPolicy

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def signup(
    body: SignupIn,
    db: Session = Depends(get_db),
) -> User:
    try:
        user = register_user(
            db, name=body.name, email=body.email, password=body.password
        )
        db.commit()
        return user
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/login/access-token", response_model=TokenOut)
def login_access_token(
    request: Request,
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
    now: datetime = Depends(get_now),
    policy: LockoutPolicy = Depends(get_lockout_policy),
    limiter: InMemoryRateLimiter = Depends(get_login_limiter),
) -> dict[str, str]:
    ip = client_ip(request)
    limiter.check(ip)

    result = authenticate(
        db,
        email=form_data.username,
        password=form_data.password,
        now=now,
        policy=policy,
        ip_address=ip,
    )
    # Counters and audit rows must persist whatever the outcome
    db.commit()

    if result.status is SignInStatus.LOCKED:
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail=result.detail,
            headers={"Retry-After": str((result.remaining_minutes or 0) * 60)},
        )
    if result.status is SignInStatus.INVALID_CREDENTIALS:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
    if result.status is SignInStatus.INACTIVE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.detail)

    if result.user is None:
        logger.error("Sign-in for %s succeeded without a user", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not complete sign-in",
        )
    return {
        "access_token": create_access_token(subject=str(result.user.id)),
        "token_type": "bearer",
    }


@router.post("/logout", response_model=MessageOut)
def logout(
    token: str = Depends(oauth2_scheme),
    _user: User = Depends(get_current_user),
) -> dict[str, str]:
    """Invalidate the current access token until it expires."""
    payload = decode_access_token(token)
    revoke_token(token, datetime.fromtimestamp(payload["exp"], tz=timezone.utc))
    return {"detail": "Logged out successfully"}


@router.post("/forgot-password", response_model=MessageOut)
def forgot_password(
    body: ForgotPasswordIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> dict[str, str]:
    request_password_reset(db, email=body.email, now=now)
    db.commit()
    return {
        "detail": "If a user with that email exists, a password reset link has been sent."
    }


@router.post("/reset-password", response_model=MessageOut)
def reset_password_with_token(
    body: ResetPasswordIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> dict[str, str]:
    try:
        reset_password(db, token=body.token, new_password=body.password, now=now)
        db.commit()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"detail": "Password has been reset successfully"}


@router.get("/lockout-status", response_model=LockoutInfoOut)
def lockout_status(
    email: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    policy: LockoutPolicy = Depends(get_lockout_policy),
) -> LockoutInfoOut:
    """Countdown for the sign-in page while an account is locked."""
    info = get_public_lockout_info(db, email=email, now=now, policy=policy)
    return LockoutInfoOut(
        is_locked=info.is_locked,
        remaining_time=info.remaining_time,
        reason=info.reason,
    )
