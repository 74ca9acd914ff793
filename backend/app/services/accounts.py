"""Account service: registration, credential sign-in, password reset and the
admin lockout operations.

Every security-relevant event is audit-logged. This module does NOT call
db.commit(); the caller (endpoint) is responsible for committing.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from backend.app.core.clock import as_utc
from backend.app.core.config import settings
from backend.app.core.security import generate_token, get_password_hash, verify_password
from backend.app.models.user import RoleEnum, User
from backend.app.services import lockout, lockout_store
from backend.app.services.audit import log_action
from backend.app.services.email_service import EmailService
from backend.app.services.lockout import AttemptOutcome, LockoutPolicy

logger = logging.getLogger(__name__)

# Same wording for unknown email and wrong password so sign-in does not reveal
# which addresses have accounts.
INVALID_CREDENTIALS_DETAIL = "Invalid email or password"
INACTIVE_DETAIL = "Inactive user"


class SignInStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    LOCKED = "LOCKED"
    INACTIVE = "INACTIVE"


@dataclass(frozen=True)
class SignInResult:
    status: SignInStatus
    detail: str
    user: User | None = None
    remaining_minutes: int | None = None
    newly_locked: bool = False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def register_user(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    role: RoleEnum = RoleEnum.USER,
) -> User:
    """Create a credential account. Raises ValueError if the email is taken."""
    email = normalize_email(email)
    if get_user_by_email(db, email):
        raise ValueError("User already exists with this email")

    user = User(
        name=name.strip(),
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        verification_token=generate_token(),
        is_verified=False,
        login_attempts=0,
        total_failed_attempts=0,
    )
    db.add(user)
    db.flush()

    log_action(
        db,
        user_id=user.id,
        action="USER_REGISTERED",
        resource_type="users",
        resource_id=str(user.id),
        changes={"email": email},
    )
    logger.info("Registered user %s", user.id)
    return user


def authenticate(
    db: Session,
    *,
    email: str,
    password: str,
    now: datetime,
    policy: LockoutPolicy,
    ip_address: str | None = None,
) -> SignInResult:
    """Check credentials for *email* and run the attempt through the lockout policy."""
    email = normalize_email(email)
    user = get_user_by_email(db, email)

    if user is None or not user.hashed_password:
        # Nothing to lock: unknown address or a social-only account
        logger.warning("Sign-in failed for %s: no credential account", email)
        log_action(
            db,
            user_id=user.id if user else None,
            action="LOGIN_FAILED",
            resource_type="auth",
            resource_id=email,
            ip_address=ip_address,
            changes={"reason": "invalid_credentials"},
        )
        return SignInResult(SignInStatus.INVALID_CREDENTIALS, INVALID_CREDENTIALS_DETAIL)

    # Skip the bcrypt check while locked; the policy rejects the attempt regardless
    password_valid = not lockout.is_locked(
        lockout_store.load_state(user), now
    ) and verify_password(password, user.hashed_password)

    result = lockout_store.record_attempt(
        db, user, password_valid=password_valid, now=now, policy=policy
    )

    if result.outcome is AttemptOutcome.LOCKED:
        logger.warning(
            "Sign-in blocked for locked account %s (%s minutes left)",
            user.id,
            result.remaining_minutes,
        )
        log_action(
            db,
            user_id=user.id,
            action="LOGIN_BLOCKED",
            resource_type="auth",
            resource_id=email,
            ip_address=ip_address,
            changes={"reason": "account_locked", "escalated": result.escalated},
        )
        return SignInResult(
            SignInStatus.LOCKED,
            result.reason or "",
            user=user,
            remaining_minutes=result.remaining_minutes,
        )

    if result.outcome is AttemptOutcome.JUST_LOCKED:
        logger.warning(
            "Account %s locked for %s minutes after %d consecutive failures (%d total)",
            user.id,
            result.remaining_minutes,
            result.state.login_attempts,
            result.state.total_failed_attempts,
        )
        log_action(
            db,
            user_id=user.id,
            action="ACCOUNT_LOCKED",
            resource_type="auth",
            resource_id=email,
            ip_address=ip_address,
            changes={
                "login_attempts": result.state.login_attempts,
                "total_failed_attempts": result.state.total_failed_attempts,
                "escalated": result.escalated,
            },
        )
        return SignInResult(
            SignInStatus.LOCKED,
            result.reason or "",
            user=user,
            remaining_minutes=result.remaining_minutes,
            newly_locked=True,
        )

    if result.outcome is AttemptOutcome.INVALID_CREDENTIALS:
        logger.warning(
            "Sign-in failed for account %s (attempt %d/%d)",
            user.id,
            result.state.login_attempts,
            policy.max_login_attempts,
        )
        log_action(
            db,
            user_id=user.id,
            action="LOGIN_FAILED",
            resource_type="auth",
            resource_id=email,
            ip_address=ip_address,
            changes={"reason": "invalid_credentials"},
        )
        return SignInResult(
            SignInStatus.INVALID_CREDENTIALS, INVALID_CREDENTIALS_DETAIL, user=user
        )

    if not user.is_active:
        logger.warning("Sign-in refused for inactive account %s", user.id)
        log_action(
            db,
            user_id=user.id,
            action="LOGIN_FAILED",
            resource_type="auth",
            resource_id=email,
            ip_address=ip_address,
            changes={"reason": "inactive_user"},
        )
        return SignInResult(SignInStatus.INACTIVE, INACTIVE_DETAIL, user=user)

    logger.info("Sign-in succeeded for account %s", user.id)
    log_action(
        db,
        user_id=user.id,
        action="LOGIN_SUCCESS",
        resource_type="auth",
        resource_id=str(user.id),
        ip_address=ip_address,
        changes={"email": user.email, "role": user.role.value},
    )
    return SignInResult(SignInStatus.SUCCESS, "", user=user)


def request_password_reset(
    db: Session,
    *,
    email: str,
    now: datetime,
    email_service: EmailService | None = None,
) -> str | None:
    """Issue a reset token and email the link.

    Returns the token, or None when no account matches (the caller answers
    the same way in both cases).
    """
    user = get_user_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for unknown address")
        return None

    token = generate_token()
    user.reset_password_token = token
    user.reset_password_expires = now + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    db.flush()

    log_action(
        db,
        user_id=user.id,
        action="PASSWORD_RESET_REQUESTED",
        resource_type="users",
        resource_id=str(user.id),
    )

    (email_service or EmailService()).send_password_reset(
        user.email,
        name=user.name,
        link=f"{settings.FRONTEND_URL}/auth/reset-password?token={token}",
        expire_minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES,
    )
    return token


def reset_password(
    db: Session,
    *,
    token: str,
    new_password: str,
    now: datetime,
) -> User:
    """Set a new password from a reset token. Also lifts any lockout."""
    user = db.query(User).filter(User.reset_password_token == token).first()
    expires = as_utc(user.reset_password_expires) if user else None
    if user is None or expires is None or expires <= now:
        raise ValueError("Invalid or expired reset token")

    lockout_store.clear(db, user)

    user.hashed_password = get_password_hash(new_password)
    user.reset_password_token = None
    user.reset_password_expires = None
    db.flush()

    log_action(
        db,
        user_id=user.id,
        action="PASSWORD_RESET",
        resource_type="users",
        resource_id=str(user.id),
    )
    logger.info("Password reset for user %s", user.id)
    return user


def get_lockout_status(
    db: Session,
    *,
    email: str,
    now: datetime,
    policy: LockoutPolicy,
) -> dict[str, Any]:
    """Full lockout status for the admin surface. Raises ValueError if unknown."""
    user = get_user_by_email(db, email)
    if user is None:
        raise ValueError("User not found")

    state = lockout_store.load_state(user)
    info = lockout.lockout_info(state, now, policy)
    return {
        "email": user.email,
        "loginAttempts": state.login_attempts,
        "totalFailedAttempts": state.total_failed_attempts,
        "lastLoginAttempt": state.last_login_attempt,
        "status": lockout.account_status(state, now, policy).value,
        "lockoutInfo": info,
        "lockoutConfig": {
            "maxAttempts": policy.max_login_attempts,
            "lockoutDuration": int(policy.lockout_duration.total_seconds() // 60),
            "escalationAttempts": policy.escalation_attempts,
            "extendedLockoutDuration": int(
                policy.extended_lockout_duration.total_seconds() // 3600
            ),
        },
    }


def get_public_lockout_info(
    db: Session,
    *,
    email: str,
    now: datetime,
    policy: LockoutPolicy,
) -> lockout.LockoutInfo:
    """Lock countdown for the sign-in page; unknown emails read as unlocked."""
    user = get_user_by_email(db, email)
    if user is None:
        return lockout.LockoutInfo(is_locked=False)
    return lockout.lockout_info(lockout_store.load_state(user), now, policy)


def unlock_account_by_email(
    db: Session,
    *,
    email: str,
    now: datetime,
    admin_id: UUID,
) -> User:
    user = get_user_by_email(db, email)
    if user is None:
        raise ValueError("User not found")

    lockout_store.unlock(db, user, now=now)

    log_action(
        db,
        user_id=admin_id,
        action="ACCOUNT_UNLOCKED",
        resource_type="users",
        resource_id=str(user.id),
        changes={"email": user.email},
    )
    logger.info("Admin %s unlocked account %s", admin_id, user.id)
    return user


def reset_failed_attempts_by_email(
    db: Session,
    *,
    email: str,
    admin_id: UUID,
) -> User:
    user = get_user_by_email(db, email)
    if user is None:
        raise ValueError("User not found")

    previous_total = user.total_failed_attempts
    lockout_store.reset(db, user)

    log_action(
        db,
        user_id=admin_id,
        action="LOGIN_ATTEMPTS_RESET",
        resource_type="users",
        resource_id=str(user.id),
        changes={"email": user.email, "previous_total_failed_attempts": previous_total},
    )
    logger.info("Admin %s reset login attempts for account %s", admin_id, user.id)
    return user
