import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedback_hub.core.database import Base

ANSWER_TYPES = ("emoji-rating", "single-choice", "multi-select", "text")


class ResponseAnswer(Base):
    """A single tagged answer extracted from a SurveyResponse for statistics."""

    __tablename__ = "response_answers"
    __table_args__ = (
        Index("ix_response_answers_response_id", "response_id"),
        Index("ix_response_answers_step_id", "step_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    response_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("survey_responses.id"), nullable=False
    )
    step_id: Mapped[str] = mapped_column(String(255), nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    question_type: Mapped[str] = mapped_column(
        Enum(*ANSWER_TYPES, name="answer_type"),
        nullable=False,
    )
    answer_value: Mapped[str | None] = mapped_column(Text)
    answer_index: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    response: Mapped["SurveyResponse"] = relationship(back_populates="answers")

    def __repr__(self) -> str:
        return f"<ResponseAnswer {self.step_id} ({self.question_type})>"
