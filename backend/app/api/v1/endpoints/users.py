from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.app.api.deps import get_current_user
from backend.app.models.user import User
from backend.app.schemas.auth import UserOut

router = APIRouter()


@router.get("/me", response_model=UserOut)
def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user
