"""Survey token lifecycle: created -> (paused <-> active)* -> deleted.

The widget files of a token exist exactly while it is active. They are a
snapshot of the survey config at create/resume time, not a live view.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feedback_hub.core.config import settings
from feedback_hub.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StorageError,
)
from feedback_hub.models.survey_token import SurveyToken
from feedback_hub.models.user import User
from feedback_hub.services.global_sections import get_global_sections, overlay_global_sections
from feedback_hub.services.sequencer import build_delivery_plan
from feedback_hub.services.surveys import get_survey_for_user
from feedback_hub.services.widgets import (
    WidgetArtifacts,
    generate_widget,
    remove_widget_files,
    write_widget_files,
)

logger = logging.getLogger(__name__)


def generate_token_id() -> str:
    return f"to_{uuid.uuid4().hex}"


def widget_url(token_id: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/widget_{token_id}.js"


def embed_code(token_id: str) -> str:
    return f'<script src="{widget_url(token_id)}"></script>'


def _delivery_cards(db: Session, token: SurveyToken) -> list[dict]:
    return overlay_global_sections((token.survey.config or {}).get("cards") or [], get_global_sections(db))


def render_token_widget(db: Session, token: SurveyToken) -> WidgetArtifacts:
    return generate_widget(
        token.token_id,
        str(token.survey_id),
        _delivery_cards(db, token),
        token.allowed_domains,
        settings.PUBLIC_BASE_URL,
        title=token.survey.title,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def get_token_for_user(db: Session, token_pk: uuid.UUID, user: User) -> SurveyToken:
    token = db.get(SurveyToken, token_pk)
    if token is None or (not user.is_admin and token.user_id != user.id):
        raise NotFoundError("Token not found")
    return token


def list_tokens(
    db: Session,
    user: User,
    page: int = 1,
    page_size: int = 10,
    survey_id: uuid.UUID | None = None,
    status: str | None = None,
) -> tuple[list[SurveyToken], int]:
    query = select(SurveyToken)
    count_query = select(func.count()).select_from(SurveyToken)
    filters = []
    if not user.is_admin:
        filters.append(SurveyToken.user_id == user.id)
    if survey_id is not None:
        filters.append(SurveyToken.survey_id == survey_id)
    if status is not None:
        filters.append(SurveyToken.status == status)
    if filters:
        query = query.where(*filters)
        count_query = count_query.where(*filters)

    total = db.execute(count_query).scalar_one()
    tokens = (
        db.execute(query.order_by(SurveyToken.created_at.desc()).offset((page - 1) * page_size).limit(page_size))
        .scalars()
        .all()
    )
    return list(tokens), total


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def create_token(
    db: Session,
    user: User,
    *,
    survey_id: uuid.UUID,
    allowed_domains: list[str] | None = None,
    valid_from: datetime | None = None,
    valid_until: datetime | None = None,
) -> SurveyToken:
    """Create a token and write its widget. Both succeed or neither is kept."""
    survey = get_survey_for_user(db, survey_id, user)

    token = SurveyToken(
        token_id=generate_token_id(),
        survey_id=survey.id,
        user_id=user.id,
        allowed_domains=allowed_domains or None,
        valid_from=valid_from,
        valid_until=valid_until,
        status="active",
    )
    token.survey = survey
    db.add(token)
    try:
        db.flush()
        write_widget_files(token.token_id, render_token_widget(db, token))
    except (SQLAlchemyError, StorageError):
        db.rollback()
        raise

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        remove_widget_files(token.token_id)
        raise

    db.refresh(token)
    logger.info("Token created: token=%s survey=%s", token.token_id, survey.id)
    return token


def pause_token(db: Session, token: SurveyToken) -> SurveyToken:
    if token.status == "paused":
        raise ConflictError("Token is already paused")
    token.status = "paused"
    db.commit()
    remove_widget_files(token.token_id)
    logger.info("Token paused: token=%s", token.token_id)
    return token


def resume_token(db: Session, token: SurveyToken) -> SurveyToken:
    """Reactivate a token, regenerating its widget from the current config."""
    if token.status == "active":
        raise ConflictError("Token is already active")
    write_widget_files(token.token_id, render_token_widget(db, token))
    token.status = "active"
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        remove_widget_files(token.token_id)
        raise
    logger.info("Token resumed: token=%s", token.token_id)
    return token


def delete_token(db: Session, token: SurveyToken) -> None:
    token_id = token.token_id
    db.delete(token)
    db.commit()
    remove_widget_files(token_id)
    logger.info("Token deleted: token=%s", token_id)


# ---------------------------------------------------------------------------
# Public delivery
# ---------------------------------------------------------------------------


def get_public_config(db: Session, token_id: str, now: datetime | None = None) -> dict:
    """Delivery data for an active token inside its validity window."""
    token = db.execute(
        select(SurveyToken).where(SurveyToken.token_id == token_id, SurveyToken.status == "active")
    ).scalar_one_or_none()
    if token is None:
        raise NotFoundError("Survey token not found or inactive")

    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    if token.valid_from and token.valid_from > now:
        raise AuthorizationError("Survey not available yet")
    if token.valid_until and token.valid_until < now:
        raise AuthorizationError("Survey has expired")

    cards = _delivery_cards(db, token)
    return {
        "token_id": token.token_id,
        "survey_id": token.survey_id,
        "title": token.survey.title,
        "allowed_domains": token.allowed_domains,
        "config": {**(token.survey.config or {}), "cards": cards},
        "plan": build_delivery_plan(cards),
    }
