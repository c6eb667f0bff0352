"""Audit log browsing (admin only)."""

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from feedback_hub.core.auth import get_admin_user
from feedback_hub.core.database import get_db
from feedback_hub.models.user import User
from feedback_hub.schemas.logs import (
    AuditFiltersResponse,
    AuditLogListResponse,
    AuditLogResponse,
    AuditSummaryResponse,
)
from feedback_hub.services.audit import audit_filters, audit_summary, list_audit_logs

router = APIRouter()


@router.get("/", response_model=AuditLogListResponse)
def list_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    action: str | None = Query(None, min_length=1),
    resource_type: str | None = Query(None, min_length=1),
    user_id: uuid.UUID | None = Query(None),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    logs, total = list_audit_logs(
        db,
        page,
        page_size,
        action=action,
        resource_type=resource_type,
        user_id=user_id,
        from_date=from_date,
        to_date=to_date,
    )
    items = [
        AuditLogResponse.model_validate(log).model_copy(update={"username": log.user.username if log.user else None})
        for log in logs
    ]
    return AuditLogListResponse(items=items, total=total, page=page, page_size=page_size)


@router.get("/summary", response_model=AuditSummaryResponse)
def logs_summary(
    days: int = Query(30, ge=1, le=365),
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """Action and resource counts plus the most active users."""
    return audit_summary(db, days)


@router.get("/filters", response_model=AuditFiltersResponse)
def logs_filters(
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    return audit_filters(db)
