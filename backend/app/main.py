from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api.v1.api import api_router
from backend.app.core.config import settings
from backend.app.core.database import Database
from backend.app.middleware.rate_limit import InMemoryRateLimiter
from backend.app.middleware.security import SecurityHeadersMiddleware


def create_app(database: Database | None = None) -> FastAPI:
    """Build the API.

    Without *database* the app builds one from ``DATABASE_URL`` and disposes
    it on shutdown. A database passed in stays owned by the caller.
    """
    owns_database = database is None
    db = database or Database(settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if owns_database:
            app.state.database.dispose()

    app = FastAPI(title="SkillShareHub Accounts", lifespan=lifespan)
    app.state.database = db
    app.state.login_limiter = InMemoryRateLimiter(
        window_seconds=settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
        max_attempts=settings.LOGIN_RATE_LIMIT_MAX_ATTEMPTS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    app.include_router(api_router)
    return app


app = create_app()
