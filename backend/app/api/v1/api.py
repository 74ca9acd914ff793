from fastapi import APIRouter

from backend.app.api.v1.endpoints import account_lockout, audit, auth, users

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(
    account_lockout.router, prefix="/auth/account-lockout", tags=["account-lockout"]
)
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(audit.router, prefix="/audit-logs", tags=["audit"])
