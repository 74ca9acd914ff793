from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_active_admin
from backend.app.core.database import get_db
from backend.app.models.user import User
from backend.app.schemas.auth import AuditLogOut
from backend.app.services.audit import list_audit_logs

router = APIRouter()


@router.get("", response_model=list[AuditLogOut])
def read_audit_logs(
    user_id: UUID | None = Query(None, description="Filter by acting user ID"),
    action: str | None = Query(None, description="Filter by action (e.g. ACCOUNT_LOCKED, LOGIN_FAILED)"),
    resource_type: str | None = Query(None, description="Filter by resource type (auth, users)"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _admin: User = Depends(get_current_active_admin),
) -> list[AuditLogOut]:
    rows = list_audit_logs(
        db,
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        limit=limit,
        offset=offset,
    )
    return [
        AuditLogOut(
            id=r.id,
            user_id=r.changed_by,
            action=r.action,
            resource_type=r.table_name,
            resource_id=r.record_id,
            changes=r.new_values,
            ip_address=r.ip_address,
            timestamp=r.created_at,
        )
        for r in rows
    ]
