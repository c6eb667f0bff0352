import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

TokenStatus = Literal["active", "paused"]


class TokenCreate(BaseModel):
    survey_id: uuid.UUID
    allowed_domains: list[str] | None = Field(
        None,
        description="Exact hostnames the widget may load on; omit for no restriction",
    )
    valid_from: datetime | None = None
    valid_until: datetime | None = None

    @model_validator(mode="after")
    def check_window(self):
        if self.valid_from and self.valid_until and self.valid_until <= self.valid_from:
            raise ValueError("valid_until must be after valid_from")
        return self


class TokenResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    token_id: str
    survey_id: uuid.UUID
    user_id: uuid.UUID
    allowed_domains: list[str] | None
    valid_from: datetime | None
    valid_until: datetime | None
    status: TokenStatus
    created_at: datetime
    widget_url: str | None = None
    embed_code: str | None = None


class TokenListResponse(BaseModel):
    items: list[TokenResponse]
    total: int
    page: int
    page_size: int


class WidgetConfigResponse(BaseModel):
    token_id: str
    survey_id: uuid.UUID
    title: str
    allowed_domains: list[str] | None
    config: dict[str, Any]
    plan: list[dict[str, Any]]
