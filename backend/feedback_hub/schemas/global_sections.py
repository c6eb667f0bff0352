from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GlobalSectionsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    intro_section: list[dict[str, Any]] = Field(..., alias="introSection")
    outro_section: list[dict[str, Any]] = Field(..., alias="outroSection")
    expected_version: int | None = Field(
        None,
        ge=0,
        alias="expectedVersion",
        description="Reject the write with 409 unless the stored version still matches",
    )


class GlobalSectionsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    intro_section: list[dict[str, Any]] = Field(..., alias="introSection")
    outro_section: list[dict[str, Any]] = Field(..., alias="outroSection")
    version: int
    last_updated: datetime | None = Field(None, alias="lastUpdated")
