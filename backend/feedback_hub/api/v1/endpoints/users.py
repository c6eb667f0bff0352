"""User administration (admin only)."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from feedback_hub.api.deps import client_meta
from feedback_hub.core.auth import get_admin_user
from feedback_hub.core.database import get_db
from feedback_hub.models.user import User
from feedback_hub.schemas.auth import MessageResponse, UserResponse, UserRole
from feedback_hub.schemas.users import UserCreate, UserListResponse, UserUpdate
from feedback_hub.services import audit
from feedback_hub.services.users import create_user, delete_user, get_user_or_404, list_users, update_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=UserListResponse)
def list_users_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    role: UserRole | None = Query(None),
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    users, total = list_users(db, page, page_size, role)
    return UserListResponse(items=users, total=total, page=page, page_size=page_size)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: uuid.UUID,
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    return get_user_or_404(db, user_id)


@router.post("/", response_model=UserResponse, status_code=201)
def create_user_endpoint(
    payload: UserCreate,
    request: Request,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    user = create_user(db, username=payload.username, email=payload.email, password=payload.password, role=payload.role)
    audit.log_audit_event(
        db,
        user_id=admin.id,
        action=audit.CREATE_USER,
        resource_type="USER",
        resource_id=user.id,
        details=payload.model_dump(),
        **client_meta(request),
    )
    return user


@router.put("/{user_id}", response_model=UserResponse)
def update_user_endpoint(
    user_id: uuid.UUID,
    payload: UserUpdate,
    request: Request,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    user = get_user_or_404(db, user_id)
    changes = payload.model_dump(exclude_unset=True)
    user = update_user(db, user, dict(changes))
    audit.log_audit_event(
        db,
        user_id=admin.id,
        action=audit.UPDATE_USER,
        resource_type="USER",
        resource_id=user.id,
        details=changes,
        **client_meta(request),
    )
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user_endpoint(
    user_id: uuid.UUID,
    request: Request,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    user = get_user_or_404(db, user_id)
    username = user.username
    delete_user(db, user)
    audit.log_audit_event(
        db,
        user_id=admin.id,
        action=audit.DELETE_USER,
        resource_type="USER",
        resource_id=user_id,
        details={"username": username},
        **client_meta(request),
    )
    return MessageResponse(message="User deleted successfully")
