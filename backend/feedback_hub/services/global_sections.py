"""Global intro/outro sections: the shared singleton record and its overlay."""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from feedback_hub.core.exceptions import ConflictError
from feedback_hub.models.global_sections import GLOBAL_SECTIONS_ID, GlobalSections
from feedback_hub.services.survey_config import INTRO_CARD_ID, OUTRO_CARD_ID, validate_step

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobalSectionsSnapshot:
    """Immutable view of the GlobalSections row passed explicitly to renderers."""

    intro_section: list[dict] = field(default_factory=list)
    outro_section: list[dict] = field(default_factory=list)
    version: int = 0
    last_updated: datetime | None = None

    @classmethod
    def from_record(cls, record: GlobalSections | None) -> "GlobalSectionsSnapshot":
        if record is None:
            return cls()
        return cls(
            intro_section=copy.deepcopy(record.intro_section or []),
            outro_section=copy.deepcopy(record.outro_section or []),
            version=record.version,
            last_updated=record.last_updated,
        )


def overlay_global_sections(cards: list[dict], sections: GlobalSectionsSnapshot) -> list[dict]:
    """Replace the steps of cards 2 and 4 with the shared intro/outro.

    Whatever the survey itself stored for those cards is ignored. Returns a
    new list; applying it twice with the same snapshot gives the same result.
    """
    overlaid = []
    for card in cards:
        card = copy.deepcopy(card)
        if card.get("id") == INTRO_CARD_ID:
            card["steps"] = copy.deepcopy(sections.intro_section)
            card["isGlobal"] = True
        elif card.get("id") == OUTRO_CARD_ID:
            card["steps"] = copy.deepcopy(sections.outro_section)
            card["isGlobal"] = True
        overlaid.append(card)
    return overlaid


def overlay_config(config: dict, sections: GlobalSectionsSnapshot) -> dict:
    """Overlay a whole survey config dict, keeping its other keys."""
    result = copy.deepcopy(config or {})
    result["cards"] = overlay_global_sections(result.get("cards") or [], sections)
    return result


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def get_global_sections(db: Session) -> GlobalSectionsSnapshot:
    return GlobalSectionsSnapshot.from_record(db.get(GlobalSections, GLOBAL_SECTIONS_ID))


def ensure_global_sections(db: Session) -> GlobalSections:
    """Return the singleton row, creating an empty one when missing."""
    record = db.get(GlobalSections, GLOBAL_SECTIONS_ID)
    if record is None:
        record = GlobalSections(
            id=GLOBAL_SECTIONS_ID,
            intro_section=[],
            outro_section=[],
            version=0,
            last_updated=datetime.now(timezone.utc).replace(tzinfo=None),
        )
        db.add(record)
        db.flush()
    return record


def validate_section_steps(intro_section: list, outro_section: list) -> list[str]:
    errors: list[str] = []
    for name, steps in (("introSection", intro_section), ("outroSection", outro_section)):
        for index, step in enumerate(steps):
            errors.extend(f"{name}[{index}]: {error}" for error in validate_step(step, strict=False))
    return errors


def update_global_sections(
    db: Session,
    *,
    intro_section: list[dict],
    outro_section: list[dict],
    expected_version: int | None = None,
) -> GlobalSectionsSnapshot:
    """Replace both sections and bump the version.

    With ``expected_version`` the write is rejected when someone else saved in
    between; without it the last write wins.
    """
    record = ensure_global_sections(db)
    if expected_version is not None and record.version != expected_version:
        raise ConflictError(
            f"Global sections were updated by someone else (version {record.version}, "
            f"expected {expected_version}); reload and try again"
        )

    record.intro_section = copy.deepcopy(intro_section)
    record.outro_section = copy.deepcopy(outro_section)
    record.version = record.version + 1
    record.last_updated = datetime.now(timezone.utc).replace(tzinfo=None)
    db.commit()
    db.refresh(record)

    logger.info(
        "Global sections updated: version=%d intro_steps=%d outro_steps=%d",
        record.version,
        len(record.intro_section),
        len(record.outro_section),
    )
    return GlobalSectionsSnapshot.from_record(record)
