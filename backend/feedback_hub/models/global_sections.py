from datetime import datetime

from sqlalchemy import Integer, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from feedback_hub.core.database import Base

GLOBAL_SECTIONS_ID = 1


class GlobalSections(Base):
    """Singleton row holding the intro/outro steps shared by every survey.

    ``version`` increments on each write so editors can detect a concurrent
    update; ``last_updated`` records when that happened.
    """

    __tablename__ = "global_sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=GLOBAL_SECTIONS_ID)
    intro_section: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    outro_section: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_updated: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return f"<GlobalSections v{self.version}>"
