"""Two-step login (password, then e-mailed code) and profile endpoints."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from feedback_hub.api.deps import client_meta
from feedback_hub.core.auth import get_admin_user, get_current_user
from feedback_hub.core.database import get_db
from feedback_hub.core.exceptions import DeliveryError
from feedback_hub.models.user import User
from feedback_hub.schemas.auth import (
    ConfirmEmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    ResendConfirmationRequest,
    TokenResponse,
    UserMessageResponse,
    UserResponse,
)
from feedback_hub.services import audit
from feedback_hub.services.auth import (
    authenticate,
    confirm_email_code,
    create_access_token,
    create_email_confirmation,
    ensure_resend_allowed,
    send_confirmation_email,
)
from feedback_hub.services.users import create_user, get_user_or_404, update_profile

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Check credentials and e-mail a confirmation code.

    A failed e-mail delivery is logged but does not fail the login step; the
    user can ask for a new code through ``/resend-confirmation``.
    """
    meta = client_meta(request)
    user = authenticate(db, body.username.strip(), body.password)
    confirmation = create_email_confirmation(db, user, **meta)

    try:
        await send_confirmation_email(user.email, confirmation.confirmation_code)
    except DeliveryError as exc:
        logger.warning("Login code for user %s not delivered: %s", user.id, exc.message)

    audit.log_audit_event(
        db,
        user_id=user.id,
        action=audit.LOGIN_ATTEMPT,
        resource_type="AUTH",
        resource_id=user.id,
        details={"username": user.username, "email": user.email},
        **meta,
    )
    return LoginResponse(user_id=user.id, email=user.email)


@router.post("/confirm-email", response_model=TokenResponse)
def confirm_email(body: ConfirmEmailRequest, request: Request, db: Session = Depends(get_db)):
    user = confirm_email_code(db, body.user_id, body.confirmation_code)
    audit.log_audit_event(
        db,
        user_id=user.id,
        action=audit.LOGIN_SUCCESS,
        resource_type="AUTH",
        resource_id=user.id,
        details={"username": user.username},
        **client_meta(request),
    )
    return TokenResponse(access_token=create_access_token(user), user=UserResponse.model_validate(user))


@router.post("/resend-confirmation", response_model=MessageResponse)
async def resend_confirmation(body: ResendConfirmationRequest, request: Request, db: Session = Depends(get_db)):
    user = get_user_or_404(db, body.user_id)
    ensure_resend_allowed(db, user.id)
    confirmation = create_email_confirmation(db, user, **client_meta(request))
    await send_confirmation_email(user.email, confirmation.confirmation_code)
    return MessageResponse(message="Confirmation email sent successfully")


@router.post("/register", response_model=UserMessageResponse, status_code=201)
def register(
    body: RegisterRequest,
    request: Request,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    user = create_user(db, username=body.username, email=body.email, password=body.password, role=body.role)
    audit.log_audit_event(
        db,
        user_id=admin.id,
        action=audit.CREATE_USER,
        resource_type="USER",
        resource_id=user.id,
        details=body.model_dump(),
        **client_meta(request),
    )
    return UserMessageResponse(message="User created successfully", user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserMessageResponse)
def update_me(
    body: ProfileUpdateRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = update_profile(
        db,
        current_user,
        username=body.username,
        email=body.email,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    audit.log_audit_event(
        db,
        user_id=user.id,
        action=audit.UPDATE_USER,
        resource_type="USER",
        resource_id=user.id,
        details=body.model_dump(by_alias=True, exclude_none=True),
        **client_meta(request),
    )
    return UserMessageResponse(message="Profile updated successfully", user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Tokens are stateless; logging out only records the event."""
    audit.log_audit_event(
        db,
        user_id=current_user.id,
        action=audit.LOGOUT,
        resource_type="AUTH",
        resource_id=current_user.id,
        details={"username": current_user.username},
        **client_meta(request),
    )
    return MessageResponse(message="Logged out successfully")
