"""Survey token API: create, list, pause, resume and delete embed tokens."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from feedback_hub.api.deps import client_meta
from feedback_hub.core.auth import get_current_user
from feedback_hub.core.database import get_db
from feedback_hub.models.survey_token import SurveyToken
from feedback_hub.models.user import User
from feedback_hub.schemas.auth import MessageResponse
from feedback_hub.schemas.tokens import TokenCreate, TokenListResponse, TokenResponse, TokenStatus
from feedback_hub.services import audit
from feedback_hub.services.tokens import (
    create_token,
    delete_token,
    embed_code,
    get_token_for_user,
    list_tokens,
    pause_token,
    resume_token,
    widget_url,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _out(token: SurveyToken) -> TokenResponse:
    response = TokenResponse.model_validate(token)
    if token.status == "active":
        response.widget_url = widget_url(token.token_id)
        response.embed_code = embed_code(token.token_id)
    return response


def _audit(db: Session, request: Request, user: User, action: str, token: SurveyToken) -> None:
    audit.log_audit_event(
        db,
        user_id=user.id,
        action=action,
        resource_type="TOKEN",
        resource_id=token.id,
        details={"tokenId": token.token_id, "surveyId": str(token.survey_id)},
        **client_meta(request),
    )


@router.get("/", response_model=TokenListResponse)
def list_tokens_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    survey_id: uuid.UUID | None = Query(None),
    status: TokenStatus | None = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tokens, total = list_tokens(db, current_user, page, page_size, survey_id, status)
    return TokenListResponse(items=[_out(t) for t in tokens], total=total, page=page, page_size=page_size)


@router.post("/", response_model=TokenResponse, status_code=201)
def create_token_endpoint(
    payload: TokenCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a token and publish its widget script."""
    token = create_token(
        db,
        current_user,
        survey_id=payload.survey_id,
        allowed_domains=payload.allowed_domains,
        valid_from=payload.valid_from,
        valid_until=payload.valid_until,
    )
    _audit(db, request, current_user, audit.CREATE_TOKEN, token)
    return _out(token)


@router.patch("/{token_pk}/pause", response_model=MessageResponse)
def pause_token_endpoint(
    token_pk: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    token = pause_token(db, get_token_for_user(db, token_pk, current_user))
    _audit(db, request, current_user, audit.PAUSE_TOKEN, token)
    return MessageResponse(message="Token paused successfully")


@router.patch("/{token_pk}/resume", response_model=MessageResponse)
def resume_token_endpoint(
    token_pk: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    token = resume_token(db, get_token_for_user(db, token_pk, current_user))
    _audit(db, request, current_user, audit.RESUME_TOKEN, token)
    return MessageResponse(message="Token resumed successfully")


@router.delete("/{token_pk}", response_model=MessageResponse)
def delete_token_endpoint(
    token_pk: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    token = get_token_for_user(db, token_pk, current_user)
    details = {"tokenId": token.token_id, "surveyId": str(token.survey_id)}
    delete_token(db, token)
    audit.log_audit_event(
        db,
        user_id=current_user.id,
        action=audit.DELETE_TOKEN,
        resource_type="TOKEN",
        resource_id=token_pk,
        details=details,
        **client_meta(request),
    )
    return MessageResponse(message="Token deleted successfully")
