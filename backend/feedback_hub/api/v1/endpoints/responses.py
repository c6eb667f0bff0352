"""Anonymous response ingestion and per-survey statistics."""

import logging
import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from feedback_hub.api.deps import client_meta
from feedback_hub.core.auth import get_current_user
from feedback_hub.core.config import settings
from feedback_hub.core.database import get_db
from feedback_hub.models.user import User
from feedback_hub.schemas.responses import ResponseSubmission, StatisticsResponse, SubmissionResult
from feedback_hub.services import audit
from feedback_hub.services.responses import check_submission_token, compute_statistics, record_response
from feedback_hub.services.surveys import get_survey_for_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/submit", response_model=SubmissionResult, status_code=201)
def submit_response(payload: ResponseSubmission, request: Request, db: Session = Depends(get_db)):
    """Store a widget submission.

    With a token id the token must be active, inside its validity window and,
    when it restricts domains, the request's Origin/Referer must match.
    """
    meta = client_meta(request)
    if payload.token_id:
        check_submission_token(
            db,
            payload.survey_id,
            payload.token_id,
            origin=request.headers.get("origin"),
            referer=request.headers.get("referer"),
            enforce_origin=settings.ENFORCE_RESPONSE_ORIGIN,
        )

    response_id = record_response(
        db,
        payload.survey_id,
        payload.token_id,
        payload.responses,
        form_type=payload.form_type,
        ip=meta["ip_address"],
        user_agent=meta["user_agent"],
    )
    audit.log_audit_event(
        db,
        user_id=None,
        action=audit.RESPONSE_SUBMIT,
        resource_type="SURVEY_RESPONSE",
        resource_id=response_id,
        details={
            "surveyId": str(payload.survey_id),
            "tokenId": payload.token_id,
            "formType": payload.form_type,
            "responseCount": len(payload.responses),
        },
        **meta,
    )
    return SubmissionResult(response_id=response_id)


@router.get("/statistics/{survey_id}", response_model=StatisticsResponse)
def get_statistics(
    survey_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    survey = get_survey_for_user(db, survey_id, current_user)
    return compute_statistics(db, survey)
