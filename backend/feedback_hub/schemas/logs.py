import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID | None
    username: str | None = None
    action: str
    resource_type: str
    resource_id: str | None
    ip_address: str | None
    user_agent: str | None
    details: dict[str, Any] | None
    timestamp: datetime


class AuditLogListResponse(BaseModel):
    items: list[AuditLogResponse]
    total: int
    page: int
    page_size: int


class CountItem(BaseModel):
    name: str
    count: int


class AuditSummaryResponse(BaseModel):
    days: int
    total: int
    actions: list[CountItem]
    resource_types: list[CountItem]
    active_users: list[CountItem]
    daily_activity: list[CountItem]


class AuditFiltersResponse(BaseModel):
    actions: list[str]
    resource_types: list[str]
    users: list[dict[str, Any]]
