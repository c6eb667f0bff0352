"""User management (admin) and self-service profile updates."""

import logging
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from feedback_hub.core.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from feedback_hub.models.survey import Survey
from feedback_hub.models.user import User
from feedback_hub.services.auth import hash_password, verify_password

logger = logging.getLogger(__name__)


def get_user_or_404(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _ensure_unique(db: Session, *, username: str | None, email: str | None, exclude_id: uuid.UUID | None = None) -> None:
    conditions = []
    if username is not None:
        conditions.append(User.username == username)
    if email is not None:
        conditions.append(User.email == email)
    if not conditions:
        return
    query = select(User).where(or_(*conditions))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    existing = db.execute(query).scalars().first()
    if existing is None:
        return
    if username is not None and existing.username == username:
        raise ConflictError("Username already taken")
    raise ConflictError("Email already registered")


def _admin_count(db: Session) -> int:
    return db.execute(select(func.count()).select_from(User).where(User.role == "admin")).scalar_one()


def list_users(
    db: Session, page: int = 1, page_size: int = 10, role: str | None = None
) -> tuple[list[User], int]:
    query = select(User)
    count_query = select(func.count()).select_from(User)
    if role is not None:
        query = query.where(User.role == role)
        count_query = count_query.where(User.role == role)

    total = db.execute(count_query).scalar_one()
    users = (
        db.execute(query.order_by(User.created_at.desc()).offset((page - 1) * page_size).limit(page_size))
        .scalars()
        .all()
    )
    return list(users), total


def create_user(
    db: Session,
    *,
    username: str,
    email: str,
    password: str,
    role: str = "user",
) -> User:
    email = email.lower()
    _ensure_unique(db, username=username, email=email)
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User created: id=%s username=%s role=%s", user.id, user.username, user.role)
    return user


def update_user(db: Session, user: User, changes: dict) -> User:
    """Apply admin edits. ``changes`` holds only the fields that were sent."""
    if not changes:
        raise ValidationError("No valid fields to update")

    if "email" in changes and changes["email"] is not None:
        changes["email"] = changes["email"].lower()
    _ensure_unique(db, username=changes.get("username"), email=changes.get("email"), exclude_id=user.id)

    demoting = user.role == "admin" and changes.get("role") not in (None, "admin")
    deactivating = user.role == "admin" and changes.get("is_active") is False
    if (demoting or deactivating) and _admin_count(db) <= 1:
        raise ValidationError("Cannot demote or deactivate the last admin user")

    password = changes.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
    for field, value in changes.items():
        if value is not None:
            setattr(user, field, value)

    db.commit()
    db.refresh(user)
    logger.info("User updated: id=%s fields=%s", user.id, sorted(changes))
    return user


def delete_user(db: Session, user: User) -> None:
    if user.role == "admin" and _admin_count(db) <= 1:
        raise ValidationError("Cannot delete the last admin user")

    owned = db.execute(
        select(func.count()).select_from(Survey).where(Survey.user_id == user.id)
    ).scalar_one()
    if owned:
        raise ConflictError(f"User still owns {owned} survey(s); delete them first")

    user_id, username = user.id, user.username
    db.delete(user)
    db.commit()
    logger.info("User deleted: id=%s username=%s", user_id, username)


def update_profile(
    db: Session,
    user: User,
    *,
    username: str | None = None,
    email: str | None = None,
    current_password: str | None = None,
    new_password: str | None = None,
) -> User:
    """Self-service edit. Changing the password requires the current one."""
    if new_password:
        if not current_password:
            raise ValidationError("Current password is required to change password")
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

    email = email.lower() if email else None
    _ensure_unique(db, username=username, email=email, exclude_id=user.id)

    if username:
        user.username = username
    if email:
        user.email = email
    if new_password:
        user.password_hash = hash_password(new_password)

    db.commit()
    db.refresh(user)
    logger.info("Profile updated: id=%s", user.id)
    return user
