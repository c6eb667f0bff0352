import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SurveyStatus = Literal["draft", "active", "paused", "completed"]
UserStepType = Literal["smiley", "single-choice", "dropdown-multiselect", "text", "section-header"]


# ---------------------------------------------------------------------------
# Config model
# ---------------------------------------------------------------------------


class ConditionalTrigger(BaseModel):
    """Show a textbox when a given option is selected."""

    model_config = ConfigDict(populate_by_name=True)

    option_index: int = Field(..., ge=0, alias="optionIndex")
    option_text: str | None = Field(None, alias="optionText")
    textbox_placeholder: str | None = Field(None, alias="textboxPlaceholder")
    textbox_label: str | None = Field(None, alias="textboxLabel")


class StepCreate(BaseModel):
    """Step definition accepted by the add-step builder operation."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(None, max_length=255)
    type: UserStepType
    question: str = ""
    options: list[str] | None = None
    required: bool = True
    conditional_triggers: list[ConditionalTrigger] | None = Field(None, alias="conditionalTriggers")
    has_textbox: bool | None = Field(None, alias="hasTextbox")
    textbox_placeholder: str | None = Field(None, alias="textboxPlaceholder")

    def to_config(self) -> dict[str, Any]:
        """The camelCase dict stored inside a survey config."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Survey CRUD schemas
# ---------------------------------------------------------------------------


class SurveyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    config: dict[str, Any] | None = Field(
        None,
        description="Card/step config; the default five-card layout is used when omitted",
    )
    status: Literal["draft", "active"] = "draft"


class SurveyUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    config: dict[str, Any] | None = None
    status: SurveyStatus | None = None


class SurveyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    owner_username: str | None = None
    title: str
    description: str | None
    status: SurveyStatus
    config: dict[str, Any]
    token_count: int = 0
    is_active: bool = False
    created_at: datetime
    updated_at: datetime
    warnings: list[str] = []


class SurveyListResponse(BaseModel):
    items: list[SurveyResponse]
    total: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Card operation schemas
# ---------------------------------------------------------------------------


class CardRename(BaseModel):
    title: str = Field(..., max_length=255)


class CardOperationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    survey: SurveyResponse
    index: int | None = None
    active_index: int | None = Field(None, alias="activeIndex")
    step: dict[str, Any] | None = None
