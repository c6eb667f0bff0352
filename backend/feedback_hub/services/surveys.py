"""Survey CRUD with ownership checks and persisted builder card operations."""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from feedback_hub.core.config import settings
from feedback_hub.core.exceptions import NotFoundError, ValidationError
from feedback_hub.models.survey import Survey
from feedback_hub.models.user import User
from feedback_hub.services import sequencer
from feedback_hub.services.global_sections import GlobalSectionsSnapshot, overlay_config
from feedback_hub.services.survey_config import default_survey_config, ensure_valid_survey_config
from feedback_hub.services.widgets import remove_widget_files

logger = logging.getLogger(__name__)


def _visible_to(query, user: User):
    if not user.is_admin:
        query = query.where(Survey.user_id == user.id)
    return query


def get_survey_for_user(db: Session, survey_id: uuid.UUID, user: User) -> Survey:
    """Load a survey the user may manage. Other users' surveys look missing."""
    survey = db.get(Survey, survey_id)
    if survey is None or (not user.is_admin and survey.user_id != user.id):
        raise NotFoundError("Survey not found")
    return survey


def list_surveys(
    db: Session,
    user: User,
    page: int = 1,
    page_size: int = 10,
    status: str | None = None,
) -> tuple[list[Survey], int]:
    query = _visible_to(select(Survey), user)
    count_query = _visible_to(select(func.count()).select_from(Survey), user)
    if status is not None:
        query = query.where(Survey.status == status)
        count_query = count_query.where(Survey.status == status)

    total = db.execute(count_query).scalar_one()
    surveys = (
        db.execute(query.order_by(Survey.updated_at.desc()).offset((page - 1) * page_size).limit(page_size))
        .scalars()
        .all()
    )
    return list(surveys), total


def survey_view(survey: Survey, sections: GlobalSectionsSnapshot) -> dict:
    """Serializable survey with the global sections applied to its config."""
    return {
        "id": survey.id,
        "user_id": survey.user_id,
        "owner_username": survey.owner.username if survey.owner else None,
        "title": survey.title,
        "description": survey.description,
        "status": survey.status,
        "config": overlay_config(survey.config, sections),
        "token_count": len(survey.tokens),
        "is_active": any(token.status == "active" for token in survey.tokens),
        "created_at": survey.created_at,
        "updated_at": survey.updated_at,
    }


def _validated(config: dict) -> tuple[dict, list[str]]:
    warnings = ensure_valid_survey_config(config, strict=settings.STRICT_CONDITIONAL_TRIGGERS)
    return config, warnings


def create_survey(
    db: Session,
    owner: User,
    *,
    title: str,
    description: str | None = None,
    config: dict | None = None,
    status: str = "draft",
) -> tuple[Survey, list[str]]:
    config, warnings = _validated(config if config is not None else default_survey_config())
    survey = Survey(
        user_id=owner.id,
        title=title,
        description=description,
        status=status,
        config=config,
    )
    db.add(survey)
    db.commit()
    db.refresh(survey)
    logger.info("Survey created: id=%s owner=%s warnings=%d", survey.id, owner.id, len(warnings))
    return survey, warnings


def update_survey(db: Session, survey: Survey, changes: dict) -> tuple[Survey, list[str]]:
    if not changes:
        raise ValidationError("No valid fields to update")

    warnings: list[str] = []
    if changes.get("config") is not None:
        changes["config"], warnings = _validated(changes["config"])

    for field, value in changes.items():
        if value is not None or field == "description":
            setattr(survey, field, value)

    db.commit()
    db.refresh(survey)
    logger.info("Survey updated: id=%s fields=%s", survey.id, sorted(changes))
    return survey, warnings


def delete_survey(db: Session, survey: Survey) -> None:
    survey_id = survey.id
    token_ids = [token.token_id for token in survey.tokens]
    db.delete(survey)
    db.commit()
    for token_id in token_ids:
        remove_widget_files(token_id)
    logger.info("Survey deleted: id=%s tokens_removed=%d", survey_id, len(token_ids))


# ---------------------------------------------------------------------------
# Card operations
# ---------------------------------------------------------------------------


def _cards(survey: Survey) -> list[dict]:
    return list((survey.config or {}).get("cards") or [])


def _save_cards(db: Session, survey: Survey, cards: list[dict]) -> Survey:
    config = dict(survey.config or {})
    config["cards"] = cards
    ensure_valid_survey_config(config, strict=settings.STRICT_CONDITIONAL_TRIGGERS)
    # New dict so the JSON column is flagged dirty.
    survey.config = config
    db.commit()
    db.refresh(survey)
    return survey


def add_survey_card(db: Session, survey: Survey) -> tuple[Survey, int]:
    cards, index = sequencer.add_card(_cards(survey))
    survey = _save_cards(db, survey, cards)
    logger.info("Card added: survey=%s index=%d", survey.id, index)
    return survey, index


def delete_survey_card(db: Session, survey: Survey, index: int, active_index: int = 0) -> tuple[Survey, int]:
    cards, new_active = sequencer.delete_card(_cards(survey), index, active_index)
    survey = _save_cards(db, survey, cards)
    logger.info("Card deleted: survey=%s index=%d", survey.id, index)
    return survey, new_active


def rename_survey_card(db: Session, survey: Survey, index: int, title: str, user: User) -> Survey:
    cards = sequencer.rename_card(_cards(survey), index, title, is_admin=user.is_admin)
    return _save_cards(db, survey, cards)


def add_survey_step(db: Session, survey: Survey, index: int, step: dict, user: User) -> tuple[Survey, dict]:
    cards, new_step = sequencer.add_step(_cards(survey), index, step, is_admin=user.is_admin)
    survey = _save_cards(db, survey, cards)
    logger.info("Step added: survey=%s card=%d step=%s", survey.id, index, new_step["id"])
    return survey, new_step
