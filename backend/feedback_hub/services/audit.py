"""Append-only audit trail of state-changing actions."""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from feedback_hub.models.audit_log import AuditLog
from feedback_hub.models.user import User

logger = logging.getLogger(__name__)

LOGIN_ATTEMPT = "LOGIN_ATTEMPT"
LOGIN_SUCCESS = "LOGIN_SUCCESS"
LOGOUT = "LOGOUT"
CREATE_USER = "CREATE_USER"
UPDATE_USER = "UPDATE_USER"
DELETE_USER = "DELETE_USER"
CREATE_SURVEY = "CREATE_SURVEY"
UPDATE_SURVEY = "UPDATE_SURVEY"
DELETE_SURVEY = "DELETE_SURVEY"
UPDATE_SURVEY_CARDS = "UPDATE_SURVEY_CARDS"
CREATE_TOKEN = "CREATE_TOKEN"
PAUSE_TOKEN = "PAUSE_TOKEN"
RESUME_TOKEN = "RESUME_TOKEN"
DELETE_TOKEN = "DELETE_TOKEN"
UPDATE_GLOBAL_SECTIONS = "UPDATE_GLOBAL_SECTIONS"
RESPONSE_SUBMIT = "RESPONSE_SUBMIT"

SENSITIVE_KEYS = frozenset({"password", "currentPassword", "newPassword", "token", "confirmationCode"})


def sanitize_details(details: Any) -> Any:
    """Drop password and token fields, recursively."""
    if isinstance(details, dict):
        return {
            key: sanitize_details(value)
            for key, value in details.items()
            if key not in SENSITIVE_KEYS
        }
    if isinstance(details, list):
        return [sanitize_details(item) for item in details]
    if isinstance(details, uuid.UUID):
        return str(details)
    return details


def log_audit_event(
    db: Session,
    *,
    user_id: uuid.UUID | None,
    action: str,
    resource_type: str,
    resource_id: Any = None,
    details: dict | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Append an audit row. Call after the primary action has committed.

    A failure here never fails the request: the audit insert alone is rolled
    back and the error logged.
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=sanitize_details(details) if details is not None else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Audit log write failed: action=%s resource=%s:%s error=%s", action, resource_type, resource_id, exc)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _filters(
    *,
    action: str | None = None,
    resource_type: str | None = None,
    user_id: uuid.UUID | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
) -> list:
    conditions = []
    if action:
        conditions.append(AuditLog.action == action)
    if resource_type:
        conditions.append(AuditLog.resource_type == resource_type)
    if user_id is not None:
        conditions.append(AuditLog.user_id == user_id)
    if from_date is not None:
        conditions.append(AuditLog.timestamp >= from_date)
    if to_date is not None:
        conditions.append(AuditLog.timestamp <= to_date)
    return conditions


def list_audit_logs(db: Session, page: int = 1, page_size: int = 50, **filters) -> tuple[list[AuditLog], int]:
    conditions = _filters(**filters)
    total = db.execute(select(func.count()).select_from(AuditLog).where(*conditions)).scalar_one()
    logs = (
        db.execute(
            select(AuditLog)
            .options(joinedload(AuditLog.user))
            .where(*conditions)
            .order_by(AuditLog.timestamp.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        .scalars()
        .all()
    )
    return list(logs), total


def _counts(db: Session, column, since: datetime) -> list[dict]:
    count = func.count(AuditLog.id).label("count")
    rows = db.execute(
        select(column, count).where(AuditLog.timestamp >= since).group_by(column).order_by(count.desc())
    ).all()
    return [{"name": str(name), "count": n} for name, n in rows]


def audit_summary(db: Session, days: int = 30) -> dict:
    """Activity counts over the last ``days`` days."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    since = now - timedelta(days=days)
    total = db.execute(
        select(func.count()).select_from(AuditLog).where(AuditLog.timestamp >= since)
    ).scalar_one()

    count = func.count(AuditLog.id).label("count")
    active_users = db.execute(
        select(User.username, count)
        .join(AuditLog, AuditLog.user_id == User.id)
        .where(AuditLog.timestamp >= since)
        .group_by(User.username)
        .order_by(count.desc())
        .limit(10)
    ).all()

    day = func.date(AuditLog.timestamp)
    daily = db.execute(
        select(day, func.count(AuditLog.id))
        .where(AuditLog.timestamp >= now - timedelta(days=7))
        .group_by(day)
        .order_by(day.desc())
    ).all()

    return {
        "days": days,
        "total": total,
        "actions": _counts(db, AuditLog.action, since),
        "resource_types": _counts(db, AuditLog.resource_type, since),
        "active_users": [{"name": name, "count": n} for name, n in active_users],
        "daily_activity": [{"name": str(date), "count": n} for date, n in daily],
    }


def audit_filters(db: Session) -> dict:
    """Distinct values present in the log, for filter dropdowns."""
    actions = db.execute(select(AuditLog.action).distinct().order_by(AuditLog.action)).scalars().all()
    resource_types = (
        db.execute(select(AuditLog.resource_type).distinct().order_by(AuditLog.resource_type)).scalars().all()
    )
    users = db.execute(
        select(User.id, User.username, User.email)
        .where(User.id.in_(select(AuditLog.user_id).where(AuditLog.user_id.is_not(None))))
        .order_by(User.username)
    ).all()
    return {
        "actions": list(actions),
        "resource_types": list(resource_types),
        "users": [{"id": str(id_), "username": username, "email": email} for id_, username, email in users],
    }
