"""Persist lockout state transitions on ``User`` rows.

Writes go through SQLAlchemy's version counter (``users.version``), so an
UPDATE only lands if nobody else changed the row since it was read. When a
concurrent sign-in wins the race the row is re-read and the transition is
evaluated again against the fresh counters. Nothing here commits.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from backend.app.core.clock import as_utc
from backend.app.models.user import User
from backend.app.services import lockout
from backend.app.services.lockout import AttemptResult, LockoutPolicy, LockoutState

logger = logging.getLogger(__name__)

MAX_WRITE_RETRIES = 3

T = TypeVar("T")


def load_state(user: User) -> LockoutState:
    return LockoutState(
        login_attempts=user.login_attempts or 0,
        total_failed_attempts=user.total_failed_attempts or 0,
        lock_until=as_utc(user.lock_until),
        last_login_attempt=as_utc(user.last_login_attempt),
    )


def apply_state(user: User, state: LockoutState) -> None:
    user.login_attempts = state.login_attempts
    user.total_failed_attempts = state.total_failed_attempts
    user.lock_until = state.lock_until
    user.last_login_attempt = state.last_login_attempt


def _compare_and_set(
    db: Session,
    user: User,
    transition: Callable[[LockoutState], tuple[LockoutState, T]],
) -> T:
    for attempt in range(1, MAX_WRITE_RETRIES + 1):
        current = load_state(user)
        next_state, payload = transition(current)
        if next_state == current:
            return payload
        try:
            with db.begin_nested():
                apply_state(user, next_state)
                db.flush()
        except StaleDataError:
            if attempt == MAX_WRITE_RETRIES:
                logger.error(
                    "Giving up on lockout update for user %s after %d conflicts",
                    user.id,
                    attempt,
                )
                raise
            logger.info("Concurrent update on user %s, re-evaluating (try %d)", user.id, attempt)
            db.refresh(user)
        else:
            return payload
    raise AssertionError("unreachable")


def record_attempt(
    db: Session,
    user: User,
    *,
    password_valid: bool,
    now: datetime,
    policy: LockoutPolicy,
) -> AttemptResult:
    """Evaluate a sign-in attempt for *user* and persist the resulting state."""

    def _transition(state: LockoutState) -> tuple[LockoutState, AttemptResult]:
        result = lockout.evaluate_attempt(state, password_valid, now, policy)
        return result.state, result

    return _compare_and_set(db, user, _transition)


def unlock(db: Session, user: User, *, now: datetime) -> LockoutState:
    def _transition(state: LockoutState) -> tuple[LockoutState, LockoutState]:
        next_state = lockout.unlock_account(state, now)
        return next_state, next_state

    return _compare_and_set(db, user, _transition)


def reset(db: Session, user: User) -> LockoutState:
    def _transition(state: LockoutState) -> tuple[LockoutState, LockoutState]:
        next_state = lockout.reset_failed_attempts(state)
        return next_state, next_state

    return _compare_and_set(db, user, _transition)


def clear(db: Session, user: User) -> LockoutState:
    def _transition(state: LockoutState) -> tuple[LockoutState, LockoutState]:
        next_state = lockout.clear_lock(state)
        return next_state, next_state

    return _compare_and_set(db, user, _transition)
