"""Admin lockout management: status, unlock, reset of failure counters."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_active_admin, get_lockout_policy, get_now
from backend.app.core.database import get_db
from backend.app.models.user import User
from backend.app.schemas.auth import (
    AccountLockoutStatusOut,
    LockoutActionIn,
    LockoutActionOut,
    LockoutConfigOut,
    LockoutInfoOut,
    ResetAttemptsIn,
)
from backend.app.services.accounts import (
    get_lockout_status,
    reset_failed_attempts_by_email,
    unlock_account_by_email,
)
from backend.app.services.lockout import LockoutPolicy

router = APIRouter()


@router.get("", response_model=AccountLockoutStatusOut)
def read_lockout_status(
    email: str | None = Query(None),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    policy: LockoutPolicy = Depends(get_lockout_policy),
    _admin: User = Depends(get_current_active_admin),
) -> AccountLockoutStatusOut:
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email parameter is required",
        )
    try:
        data = get_lockout_status(db, email=email, now=now, policy=policy)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    info = data["lockoutInfo"]
    return AccountLockoutStatusOut(
        email=data["email"],
        login_attempts=data["loginAttempts"],
        total_failed_attempts=data["totalFailedAttempts"],
        last_login_attempt=data["lastLoginAttempt"],
        status=data["status"],
        lockout_info=LockoutInfoOut(
            is_locked=info.is_locked,
            remaining_time=info.remaining_time,
            reason=info.reason,
        ),
        lockout_config=LockoutConfigOut(**data["lockoutConfig"]),
    )


@router.post("", response_model=LockoutActionOut)
def manage_lockout(
    body: LockoutActionIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: User = Depends(get_current_active_admin),
) -> LockoutActionOut:
    """Unlock an account. ``unlock`` is the only supported action."""
    if body.action != "unlock":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid action. Use 'unlock'",
        )
    try:
        user = unlock_account_by_email(db, email=body.email, now=now, admin_id=admin.id)
        db.commit()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return LockoutActionOut(
        success=True,
        message="Account has been unlocked successfully",
        email=user.email,
    )


@router.put("", response_model=LockoutActionOut)
def reset_login_attempts(
    body: ResetAttemptsIn,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_active_admin),
) -> LockoutActionOut:
    """Clear both failure counters and any lock."""
    try:
        user = reset_failed_attempts_by_email(db, email=body.email, admin_id=admin.id)
        db.commit()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return LockoutActionOut(
        success=True,
        message="Login attempts have been reset successfully",
        email=user.email,
    )
