"""Response ingestion and per-step statistics."""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from feedback_hub.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from feedback_hub.models.response_answer import ResponseAnswer
from feedback_hub.models.survey import Survey
from feedback_hub.models.survey_response import SurveyResponse
from feedback_hub.models.survey_token import SurveyToken
from feedback_hub.services.global_sections import get_global_sections, overlay_global_sections
from feedback_hub.services.survey_config import (
    EMOJI_LABELS,
    STEP_MULTISELECT,
    STEP_SINGLE_CHOICE,
    STEP_SMILEY,
    find_step,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Answer variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmojiAnswer:
    index: int
    tag = "emoji-rating"

    @property
    def value(self) -> str:
        return EMOJI_LABELS[self.index]


@dataclass(frozen=True)
class ChoiceAnswer:
    text: str
    tag = "single-choice"

    @property
    def value(self) -> str:
        return self.text


@dataclass(frozen=True)
class MultiAnswer:
    values: tuple[str, ...]
    tag = "multi-select"

    @property
    def value(self) -> str:
        return ", ".join(self.values)


@dataclass(frozen=True)
class TextAnswer:
    text: str
    tag = "text"

    @property
    def value(self) -> str:
        return self.text


Answer = EmojiAnswer | ChoiceAnswer | MultiAnswer | TextAnswer


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def _as_text(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def _emoji(value: Any, step_id: str) -> EmojiAnswer:
    if not _is_number(value) or int(value) != value or not 0 <= int(value) < len(EMOJI_LABELS):
        raise ValidationError(f"Answer for '{step_id}' must be a rating index between 0 and {len(EMOJI_LABELS) - 1}")
    return EmojiAnswer(int(value))


def classify_answer(step_id: str, value: Any, step: dict | None = None) -> Answer:
    """Tag a raw answer value.

    With a known ``step`` the tag follows the step type. Otherwise it is
    inferred from the value: numbers are smiley ratings, lists become text
    joined with ", ", anything else is text.
    """
    if step is not None:
        step_type = step.get("type")
        if step_type == STEP_SMILEY:
            return _emoji(value, step_id)
        if step_type == STEP_SINGLE_CHOICE:
            return ChoiceAnswer(_as_text(value))
        if step_type == STEP_MULTISELECT:
            values = value if isinstance(value, list) else [value]
            return MultiAnswer(tuple(str(v) for v in values))
        return TextAnswer(_as_text(value))

    if _is_number(value) and int(value) == value and 0 <= int(value) < len(EMOJI_LABELS):
        return EmojiAnswer(int(value))
    return TextAnswer(_as_text(value))


# ---------------------------------------------------------------------------
# Submission checks
# ---------------------------------------------------------------------------


def _naive_utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def request_hostname(origin: str | None, referer: str | None) -> str | None:
    """Hostname of the submitting page, lower-cased and without port.

    A header that does not parse yields None, which matches no allowed domain.
    """
    for header in (origin, referer):
        if header and header != "null":
            try:
                return urlsplit(header).hostname
            except ValueError:
                return None
    return None


def check_submission_token(
    db: Session,
    survey_id: uuid.UUID,
    token_id: str,
    *,
    origin: str | None = None,
    referer: str | None = None,
    enforce_origin: bool = True,
    now: datetime | None = None,
) -> SurveyToken:
    """Verify a token may accept a submission for ``survey_id``."""
    token = db.execute(select(SurveyToken).where(SurveyToken.token_id == token_id)).scalar_one_or_none()
    if token is None:
        raise NotFoundError("Token not found")
    if token.survey_id != survey_id:
        raise AuthorizationError("Token does not belong to this survey")
    if token.status != "active":
        raise AuthorizationError("Survey is not accepting responses")

    now = now or _naive_utc_now()
    if token.valid_from and token.valid_from > now:
        raise AuthorizationError("Survey is not available yet")
    if token.valid_until and token.valid_until < now:
        raise AuthorizationError("Survey has expired")

    if enforce_origin and token.allowed_domains and (origin or referer):
        hostname = request_hostname(origin, referer)
        allowed = {domain.lower() for domain in token.allowed_domains}
        if hostname not in allowed:
            logger.warning("Submission rejected: token=%s host=%s", token_id, hostname)
            raise AuthorizationError("Submissions are not allowed from this domain")
    return token


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


def record_response(
    db: Session,
    survey_id: uuid.UUID,
    token_id: str | None,
    raw_answers: dict[str, Any],
    *,
    form_type: str | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
) -> uuid.UUID:
    """Store a submission and one tagged answer row per non-null value.

    Everything is committed together; on a database failure nothing is kept.
    """
    survey = db.get(Survey, survey_id)
    if survey is None:
        raise NotFoundError("Survey not found")

    cards = overlay_global_sections((survey.config or {}).get("cards") or [], get_global_sections(db))

    # Classify first so a bad value is rejected before anything is written.
    classified: list[tuple[str, dict | None, Answer]] = []
    for step_id, value in raw_answers.items():
        if value is None:
            continue
        step = find_step(cards, step_id)
        classified.append((step_id, step, classify_answer(step_id, value, step)))

    response = SurveyResponse(
        survey_id=survey.id,
        token_id=token_id,
        form_type=form_type,
        response_data=raw_answers,
        ip_address=ip,
        user_agent=user_agent,
    )
    for step_id, step, answer in classified:
        response.answers.append(
            ResponseAnswer(
                step_id=step_id,
                question_text=(step or {}).get("question") or "",
                question_type=answer.tag,
                answer_value=answer.value,
                answer_index=answer.index if isinstance(answer, EmojiAnswer) else None,
            )
        )

    try:
        db.add(response)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to record response for survey %s: %s", survey_id, exc)
        raise StorageError() from exc

    logger.info(
        "Response recorded: id=%s survey=%s token=%s answers=%d",
        response.id,
        survey_id,
        token_id,
        len(classified),
    )
    return response.id


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def list_responses(
    db: Session, survey_id: uuid.UUID, page: int = 1, page_size: int = 50
) -> tuple[list[SurveyResponse], int]:
    total = db.execute(
        select(func.count()).select_from(SurveyResponse).where(SurveyResponse.survey_id == survey_id)
    ).scalar_one()
    responses = (
        db.execute(
            select(SurveyResponse)
            .where(SurveyResponse.survey_id == survey_id)
            .order_by(SurveyResponse.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        .scalars()
        .all()
    )
    return list(responses), total


def _empty_stat(question_type: str) -> dict[str, Any]:
    stat: dict[str, Any] = {"type": question_type, "totalResponses": 0, "distribution": {}}
    if question_type == "text":
        stat["textResponses"] = []
    return stat


def compute_statistics(db: Session, survey: Survey) -> dict[str, Any]:
    """Recompute per-step statistics from every stored answer of ``survey``."""
    responses = (
        db.execute(
            select(SurveyResponse)
            .where(SurveyResponse.survey_id == survey.id)
            .options(selectinload(SurveyResponse.answers))
            .order_by(SurveyResponse.created_at.desc())
        )
        .scalars()
        .all()
    )

    statistics: dict[str, dict[str, Any]] = {}
    individual = []
    for response in responses:
        answers = {}
        for answer in sorted(response.answers, key=lambda a: a.step_id):
            answers[answer.step_id] = {
                "type": answer.question_type,
                "value": answer.answer_value,
                "index": answer.answer_index,
            }
            stat = statistics.setdefault(answer.step_id, _empty_stat(answer.question_type))
            distribution = stat["distribution"]
            if answer.question_type == "emoji-rating":
                label = EMOJI_LABELS[answer.answer_index]
                distribution[label] = distribution.get(label, 0) + 1
            elif answer.question_type == "single-choice":
                distribution[answer.answer_value] = distribution.get(answer.answer_value, 0) + 1
            elif answer.question_type == "multi-select":
                raw = (response.response_data or {}).get(answer.step_id)
                values = raw if isinstance(raw, list) else [answer.answer_value]
                for value in values:
                    value = str(value)
                    distribution[value] = distribution.get(value, 0) + 1
            else:
                stat.setdefault("textResponses", []).append(answer.answer_value)
            stat["totalResponses"] += 1

        individual.append(
            {
                "id": str(response.id),
                "submittedAt": response.created_at.isoformat() if response.created_at else None,
                "formType": response.form_type,
                "ipAddress": response.ip_address,
                "answers": answers,
            }
        )

    return {
        "survey": {"id": str(survey.id), "title": survey.title, "description": survey.description},
        "responseCount": len(responses),
        "statistics": statistics,
        "individualResponses": individual,
    }
