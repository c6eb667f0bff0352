import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ResponseSubmission(BaseModel):
    """Anonymous submission posted by the widget."""

    model_config = ConfigDict(populate_by_name=True)

    survey_id: uuid.UUID = Field(..., alias="surveyId")
    token_id: str | None = Field(None, max_length=64, alias="tokenId")
    responses: dict[str, Any] = Field(
        ...,
        description="Answers keyed by step id: rating index, option text, list of options or free text",
    )
    form_type: Literal["feedback", "problem"] | None = Field(None, alias="formType")


class SubmissionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    response_id: uuid.UUID = Field(..., alias="responseId")


class StoredResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    survey_id: uuid.UUID
    token_id: str | None
    form_type: str | None
    response_data: dict[str, Any]
    ip_address: str | None
    user_agent: str | None
    created_at: datetime


class StoredResponseListResponse(BaseModel):
    items: list[StoredResponse]
    total: int
    page: int
    page_size: int


class StepStatistics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    total_responses: int = Field(..., alias="totalResponses")
    distribution: dict[str, int]
    text_responses: list[str] | None = Field(None, alias="textResponses")


class StatisticsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    survey: dict[str, Any]
    response_count: int = Field(..., alias="responseCount")
    statistics: dict[str, StepStatistics]
    individual_responses: list[dict[str, Any]] = Field(..., alias="individualResponses")
