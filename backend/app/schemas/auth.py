from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from backend.app.core.security import validate_password_strength
from backend.app.models.user import RoleEnum


def _validate_pw(v: str) -> str:
    error = validate_password_strength(v)
    if error:
        raise ValueError(error)
    return v


# ─── Registration & sign-in ──────────────────────────────────────────────────


class SignupIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., max_length=128)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        return _validate_pw(v)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ForgotPasswordIn(BaseModel):
    email: EmailStr


class ResetPasswordIn(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., max_length=128)

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        return _validate_pw(v)


class MessageOut(BaseModel):
    detail: str


class UserOut(BaseModel):
    id: UUID
    email: str
    name: str
    role: RoleEnum
    is_active: bool
    is_verified: bool

    model_config = ConfigDict(from_attributes=True)


# ─── Lockout (camelCase on the wire, as the web client expects) ─────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LockoutInfoOut(_CamelModel):
    is_locked: bool
    remaining_time: int | None = None
    reason: str | None = None


class LockoutConfigOut(_CamelModel):
    max_attempts: int
    lockout_duration: int  # minutes
    escalation_attempts: int
    extended_lockout_duration: int  # hours


class AccountLockoutStatusOut(_CamelModel):
    email: str
    login_attempts: int
    total_failed_attempts: int
    last_login_attempt: datetime | None = None
    status: str
    lockout_info: LockoutInfoOut
    lockout_config: LockoutConfigOut


class LockoutActionIn(_CamelModel):
    email: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)


class ResetAttemptsIn(_CamelModel):
    email: str = Field(..., min_length=1)


class LockoutActionOut(_CamelModel):
    success: bool
    message: str
    email: str


# ─── Audit ───────────────────────────────────────────────────────────────────


class AuditLogOut(BaseModel):
    id: UUID
    user_id: UUID | None
    action: str
    resource_type: str
    resource_id: str
    changes: dict[str, Any] | None
    ip_address: str | None
    timestamp: datetime
