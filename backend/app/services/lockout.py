"""Account lockout policy.

Pure functions over a ``LockoutState`` snapshot of a user's counters. Nothing
here touches the database or reads the system clock: callers pass ``now``
and persist the returned state themselves (see ``lockout_store``).

A sign-in attempt is evaluated in this order:

1. an active lock (``lock_until > now``) rejects the attempt untouched;
2. an expired lock is reclaimed, so a failure restarts the consecutive
   counter at 1;
3. a failure bumps both counters and locks once ``max_login_attempts`` is
   reached, for the extended duration when the lifetime total has hit
   ``escalation_attempts``;
4. a success clears the consecutive counter and the lock.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from backend.app.core.config import Settings


@dataclass(frozen=True)
class LockoutPolicy:
    max_login_attempts: int = 5
    lockout_duration: timedelta = timedelta(hours=2)
    escalation_attempts: int = 10
    extended_lockout_duration: timedelta = timedelta(hours=24)

    @classmethod
    def from_settings(cls, settings: Settings) -> LockoutPolicy:
        return cls(
            max_login_attempts=settings.MAX_LOGIN_ATTEMPTS,
            lockout_duration=timedelta(minutes=settings.LOCKOUT_MINUTES),
            escalation_attempts=settings.ESCALATION_ATTEMPTS,
            extended_lockout_duration=timedelta(minutes=settings.EXTENDED_LOCKOUT_MINUTES),
        )

    def duration_for(self, total_failed_attempts: int) -> timedelta:
        if total_failed_attempts >= self.escalation_attempts:
            return self.extended_lockout_duration
        return self.lockout_duration


@dataclass(frozen=True)
class LockoutState:
    login_attempts: int = 0
    total_failed_attempts: int = 0
    lock_until: datetime | None = None
    last_login_attempt: datetime | None = None


class AttemptOutcome(str, enum.Enum):
    ACCEPTED = "ACCEPTED"
    LOCKED = "LOCKED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    JUST_LOCKED = "JUST_LOCKED"


class AccountStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    WARNED = "WARNED"
    LOCKED = "LOCKED"
    ESCALATED_LOCKED = "ESCALATED_LOCKED"


@dataclass(frozen=True)
class AttemptResult:
    outcome: AttemptOutcome
    state: LockoutState
    remaining_minutes: int | None = None
    reason: str | None = None
    escalated: bool = False

    @property
    def accepted(self) -> bool:
        return self.outcome is AttemptOutcome.ACCEPTED


@dataclass(frozen=True)
class LockoutInfo:
    is_locked: bool
    remaining_time: int | None = None
    reason: str | None = None


def is_locked(state: LockoutState, now: datetime) -> bool:
    return state.lock_until is not None and state.lock_until > now


def remaining_minutes(state: LockoutState, now: datetime) -> int:
    """Whole minutes left on the lock, rounded up. 0 when unlocked."""
    if state.lock_until is None or state.lock_until <= now:
        return 0
    return math.ceil((state.lock_until - now).total_seconds() / 60)


def is_escalated(state: LockoutState, policy: LockoutPolicy) -> bool:
    return state.total_failed_attempts >= policy.escalation_attempts


def lock_reason(state: LockoutState, now: datetime, policy: LockoutPolicy) -> str:
    """User-facing explanation of an active lock, empty when unlocked."""
    if not is_locked(state, now):
        return ""
    minutes = remaining_minutes(state, now)
    if is_escalated(state, policy):
        return (
            "Account temporarily locked due to suspicious activity. "
            f"Please try again in {minutes} minutes or contact support."
        )
    return (
        "Account locked after multiple failed login attempts. "
        f"Please try again in {minutes} minutes."
    )


def lockout_info(state: LockoutState, now: datetime, policy: LockoutPolicy) -> LockoutInfo:
    if not is_locked(state, now):
        return LockoutInfo(is_locked=False)
    return LockoutInfo(
        is_locked=True,
        remaining_time=remaining_minutes(state, now),
        reason=lock_reason(state, now, policy),
    )


def account_status(state: LockoutState, now: datetime, policy: LockoutPolicy) -> AccountStatus:
    if is_locked(state, now):
        if is_escalated(state, policy):
            return AccountStatus.ESCALATED_LOCKED
        return AccountStatus.LOCKED
    # An expired lock counts as a clean slate; the counter restarts on the next failure
    if state.lock_until is not None:
        return AccountStatus.ACTIVE
    if state.login_attempts > 0:
        return AccountStatus.WARNED
    return AccountStatus.ACTIVE


def evaluate_attempt(
    state: LockoutState,
    password_valid: bool,
    now: datetime,
    policy: LockoutPolicy,
) -> AttemptResult:
    """Decide the outcome of one sign-in attempt and the state to persist."""
    if is_locked(state, now):
        return AttemptResult(
            outcome=AttemptOutcome.LOCKED,
            state=state,
            remaining_minutes=remaining_minutes(state, now),
            reason=lock_reason(state, now, policy),
            escalated=is_escalated(state, policy),
        )

    lock_expired = state.lock_until is not None

    if password_valid:
        return AttemptResult(
            outcome=AttemptOutcome.ACCEPTED,
            state=replace(state, login_attempts=0, lock_until=None, last_login_attempt=now),
        )

    login_attempts = 1 if lock_expired else state.login_attempts + 1
    total_failed = state.total_failed_attempts + 1
    next_state = LockoutState(
        login_attempts=login_attempts,
        total_failed_attempts=total_failed,
        lock_until=None,
        last_login_attempt=now,
    )

    if login_attempts < policy.max_login_attempts:
        return AttemptResult(outcome=AttemptOutcome.INVALID_CREDENTIALS, state=next_state)

    next_state = replace(next_state, lock_until=now + policy.duration_for(total_failed))
    return AttemptResult(
        outcome=AttemptOutcome.JUST_LOCKED,
        state=next_state,
        remaining_minutes=remaining_minutes(next_state, now),
        reason=lock_reason(next_state, now, policy),
        escalated=is_escalated(next_state, policy),
    )


def unlock_account(state: LockoutState, now: datetime) -> LockoutState:
    """Admin unlock: clears the lock and the consecutive counter only."""
    return replace(state, login_attempts=0, lock_until=None, last_login_attempt=now)


def reset_failed_attempts(state: LockoutState) -> LockoutState:
    """Admin reset: clears both counters and the lock."""
    return replace(state, login_attempts=0, total_failed_attempts=0, lock_until=None)


def clear_lock(state: LockoutState) -> LockoutState:
    """Drop the lock and consecutive counter without recording an attempt."""
    return replace(state, login_attempts=0, lock_until=None)


def format_remaining_time(minutes: int) -> str:
    """Render a countdown such as ``"2 hours and 5 minutes"``."""
    if minutes < 60:
        return f"{minutes} minute{'' if minutes == 1 else 's'}"
    hours, mins = divmod(minutes, 60)
    text = f"{hours} hour{'' if hours == 1 else 's'}"
    if mins > 0:
        text += f" and {mins} minute{'' if mins == 1 else 's'}"
    return text
