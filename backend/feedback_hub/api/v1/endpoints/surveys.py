"""Survey API: CRUD, stored responses and builder card operations."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from feedback_hub.api.deps import client_meta
from feedback_hub.core.auth import get_current_user
from feedback_hub.core.database import get_db
from feedback_hub.models.survey import Survey
from feedback_hub.models.user import User
from feedback_hub.schemas.responses import StoredResponseListResponse
from feedback_hub.schemas.surveys import (
    CardOperationResponse,
    CardRename,
    StepCreate,
    SurveyCreate,
    SurveyListResponse,
    SurveyResponse,
    SurveyStatus,
    SurveyUpdate,
)
from feedback_hub.services import audit
from feedback_hub.services.global_sections import GlobalSectionsSnapshot, get_global_sections
from feedback_hub.services.responses import list_responses
from feedback_hub.services.surveys import (
    add_survey_card,
    add_survey_step,
    create_survey,
    delete_survey,
    delete_survey_card,
    get_survey_for_user,
    list_surveys,
    rename_survey_card,
    survey_view,
    update_survey,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _out(survey: Survey, sections: GlobalSectionsSnapshot, warnings: list[str] | None = None) -> SurveyResponse:
    return SurveyResponse(**survey_view(survey, sections), warnings=warnings or [])


def _audit_cards(db: Session, request: Request, user: User, survey: Survey, operation: str, **details) -> None:
    audit.log_audit_event(
        db,
        user_id=user.id,
        action=audit.UPDATE_SURVEY_CARDS,
        resource_type="SURVEY",
        resource_id=survey.id,
        details={"operation": operation, **details},
        **client_meta(request),
    )


# ---------------------------------------------------------------------------
# Survey CRUD
# ---------------------------------------------------------------------------


@router.get("/", response_model=SurveyListResponse)
def list_surveys_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status: SurveyStatus | None = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Users see their own surveys, admins see all."""
    surveys, total = list_surveys(db, current_user, page, page_size, status)
    sections = get_global_sections(db)
    return SurveyListResponse(
        items=[_out(survey, sections) for survey in surveys],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/", response_model=SurveyResponse, status_code=201)
def create_survey_endpoint(
    payload: SurveyCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    survey, warnings = create_survey(
        db,
        current_user,
        title=payload.title,
        description=payload.description,
        config=payload.config,
        status=payload.status,
    )
    audit.log_audit_event(
        db,
        user_id=current_user.id,
        action=audit.CREATE_SURVEY,
        resource_type="SURVEY",
        resource_id=survey.id,
        details={"title": survey.title, "status": survey.status},
        **client_meta(request),
    )
    return _out(survey, get_global_sections(db), warnings)


@router.get("/{survey_id}", response_model=SurveyResponse)
def get_survey(
    survey_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    survey = get_survey_for_user(db, survey_id, current_user)
    return _out(survey, get_global_sections(db))


@router.put("/{survey_id}", response_model=SurveyResponse)
def update_survey_endpoint(
    survey_id: uuid.UUID,
    payload: SurveyUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    survey = get_survey_for_user(db, survey_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    survey, warnings = update_survey(db, survey, changes)
    audit.log_audit_event(
        db,
        user_id=current_user.id,
        action=audit.UPDATE_SURVEY,
        resource_type="SURVEY",
        resource_id=survey.id,
        details={"fields": sorted(changes)},
        **client_meta(request),
    )
    return _out(survey, get_global_sections(db), warnings)


@router.delete("/{survey_id}", status_code=204)
def delete_survey_endpoint(
    survey_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    survey = get_survey_for_user(db, survey_id, current_user)
    title = survey.title
    delete_survey(db, survey)
    audit.log_audit_event(
        db,
        user_id=current_user.id,
        action=audit.DELETE_SURVEY,
        resource_type="SURVEY",
        resource_id=survey_id,
        details={"title": title},
        **client_meta(request),
    )


@router.get("/{survey_id}/responses", response_model=StoredResponseListResponse)
def list_survey_responses(
    survey_id: uuid.UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    survey = get_survey_for_user(db, survey_id, current_user)
    responses, total = list_responses(db, survey.id, page, page_size)
    return StoredResponseListResponse(items=responses, total=total, page=page, page_size=page_size)


# ---------------------------------------------------------------------------
# Card operations
# ---------------------------------------------------------------------------


@router.post("/{survey_id}/cards", response_model=CardOperationResponse, status_code=201)
def add_card(
    survey_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Insert a new user card before the closing section."""
    survey = get_survey_for_user(db, survey_id, current_user)
    survey, index = add_survey_card(db, survey)
    _audit_cards(db, request, current_user, survey, "add_card", index=index)
    return CardOperationResponse(survey=_out(survey, get_global_sections(db)), index=index)


@router.patch("/{survey_id}/cards/{index}", response_model=CardOperationResponse)
def rename_card(
    survey_id: uuid.UUID,
    index: int,
    payload: CardRename,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    survey = get_survey_for_user(db, survey_id, current_user)
    survey = rename_survey_card(db, survey, index, payload.title, current_user)
    _audit_cards(db, request, current_user, survey, "rename_card", index=index, title=payload.title)
    return CardOperationResponse(survey=_out(survey, get_global_sections(db)), index=index)


@router.delete("/{survey_id}/cards/{index}", response_model=CardOperationResponse)
def delete_card(
    survey_id: uuid.UUID,
    index: int,
    request: Request,
    active_index: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a user card. The response carries the re-clamped active index."""
    survey = get_survey_for_user(db, survey_id, current_user)
    survey, new_active = delete_survey_card(db, survey, index, active_index)
    _audit_cards(db, request, current_user, survey, "delete_card", index=index)
    return CardOperationResponse(
        survey=_out(survey, get_global_sections(db)),
        index=index,
        active_index=new_active,
    )


@router.post("/{survey_id}/cards/{index}/steps", response_model=CardOperationResponse, status_code=201)
def add_step(
    survey_id: uuid.UUID,
    index: int,
    payload: StepCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    survey = get_survey_for_user(db, survey_id, current_user)
    survey, step = add_survey_step(db, survey, index, payload.to_config(), current_user)
    _audit_cards(db, request, current_user, survey, "add_step", index=index, step_id=step["id"])
    return CardOperationResponse(survey=_out(survey, get_global_sections(db)), index=index, step=step)
