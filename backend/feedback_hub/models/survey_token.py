import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedback_hub.core.database import Base


class SurveyToken(Base):
    """Public embedding credential for a survey widget.

    ``token_id`` is the opaque public identifier (``to_`` + 32 hex chars) that
    names the generated ``widget_<token_id>.js`` file. ``allowed_domains`` of
    None means the widget may load anywhere.
    """

    __tablename__ = "survey_tokens"
    __table_args__ = (
        Index("ix_survey_tokens_survey_id", "survey_id"),
        Index("ix_survey_tokens_user_id", "user_id"),
        Index("ix_survey_tokens_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    token_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    survey_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("surveys.id"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    allowed_domains: Mapped[list | None] = mapped_column(JSONB)
    valid_from: Mapped[datetime | None] = mapped_column(DateTime)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime)
    status: Mapped[str] = mapped_column(
        Enum("active", "paused", name="token_status"),
        nullable=False,
        default="active",
        server_default="active",
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    survey: Mapped["Survey"] = relationship(back_populates="tokens")
    owner: Mapped["User"] = relationship(back_populates="tokens")

    def __repr__(self) -> str:
        return f"<SurveyToken {self.token_id} ({self.status})>"
