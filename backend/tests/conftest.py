"""Shared test fixtures.

Each test gets its own in-memory SQLite database, so tests never pollute
each other. The app under test shares the test's session and a controllable
clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.app.api.deps import get_now
from backend.app.core.database import Database, get_db
from backend.app.core.security import create_access_token, get_password_hash
from backend.app.main import create_app
from backend.app.models.user import RoleEnum, User

PASSWORD = "correct-horse"
WRONG_PASSWORD = "wrong-horse"

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Mutable ``now`` for lockout tests."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ─── Database ────────────────────────────────────────────────────────────────


@pytest.fixture()
def database() -> Generator[Database, None, None]:
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture()
def db(database: Database) -> Generator[Session, None, None]:
    session = database.session()
    yield session
    session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def client(
    database: Database, db: Session, clock: FakeClock
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the test session and clock."""
    app = create_app(database)

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_now] = clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Users ───────────────────────────────────────────────────────────────────


def make_user(
    db: Session,
    email: str,
    *,
    role: RoleEnum = RoleEnum.USER,
    password: str | None = PASSWORD,
    **fields: object,
) -> User:
    user = User(
        email=email,
        name=email.split("@")[0].title(),
        hashed_password=get_password_hash(password) if password else None,
        role=role,
        **fields,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def member(db: Session) -> User:
    return make_user(db, "member@example.com")


@pytest.fixture()
def admin_user(db: Session) -> User:
    return make_user(db, "admin@example.com", role=RoleEnum.ADMIN)


@pytest.fixture()
def admin_token(admin_user: User) -> str:
    return create_access_token(subject=str(admin_user.id))


@pytest.fixture()
def member_token(member: User) -> str:
    return create_access_token(subject=str(member.id))


def auth(token: str) -> dict[str, str]:
    """Return Authorization header dict."""
    return {"Authorization": f"Bearer {token}"}


def login(client: TestClient, email: str, password: str):  # type: ignore[no-untyped-def]
    return client.post(
        "/api/v1/auth/login/access-token",
        data={"username": email, "password": password},
    )
