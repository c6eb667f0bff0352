import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedback_hub.core.database import Base


class SurveyResponse(Base):
    """One anonymous submission of a survey widget.

    ``response_data`` keeps the raw answer map exactly as submitted:
        {
            "step-1": 0,              # smiley index (0 = Very Happy)
            "step-2": ["A", "B"],     # multi-select
            "step-3": "Free text"     # text / single choice
        }
    The per-step rows used for statistics live in ``response_answers``.
    """

    __tablename__ = "survey_responses"
    __table_args__ = (
        Index("ix_survey_responses_survey_id", "survey_id"),
        Index("ix_survey_responses_token_id", "token_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    survey_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("surveys.id"), nullable=False)
    token_id: Mapped[str | None] = mapped_column(String(64))
    form_type: Mapped[str | None] = mapped_column(String(50))
    response_data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    survey: Mapped["Survey"] = relationship(back_populates="responses")
    answers: Mapped[list["ResponseAnswer"]] = relationship(
        back_populates="response", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<SurveyResponse survey={self.survey_id} answers={len(self.response_data or {})}>"
