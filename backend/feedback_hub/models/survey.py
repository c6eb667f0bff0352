import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedback_hub.core.database import Base


class Survey(Base):
    """Survey definition with a JSONB card/step configuration.

    The config is a dict of the shape:
        {
            "cards": [
                {
                    "id": 3,
                    "title": "Hlavní obsah",
                    "isAdminOnly": false,
                    "isEditable": true,
                    "isSystem": false,
                    "steps": [
                        {"id": "step-1", "type": "smiley", "question": "...", ...}
                    ]
                },
                ...
            ]
        }

    Cards 2 and 4 are the global intro/outro sections; whatever is stored for
    their steps is replaced by the GlobalSections record on every read.
    """

    __tablename__ = "surveys"
    __table_args__ = (
        Index("ix_surveys_user_id", "user_id"),
        Index("ix_surveys_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        Enum("draft", "active", "paused", "completed", name="survey_status"),
        nullable=False,
        default="draft",
        server_default="draft",
    )
    config: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    owner: Mapped["User"] = relationship(back_populates="surveys")
    tokens: Mapped[list["SurveyToken"]] = relationship(back_populates="survey", cascade="all, delete-orphan")
    responses: Mapped[list["SurveyResponse"]] = relationship(back_populates="survey", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Survey {self.title} ({self.status})>"
