import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
import httpx
import jwt
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from feedback_hub.core.config import settings
from feedback_hub.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DeliveryError,
    NotFoundError,
    RateLimitedError,
)
from feedback_hub.models.email_confirmation import EmailConfirmation
from feedback_hub.models.user import User

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Password utilities
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


# ---------------------------------------------------------------------------
# JWT utilities
# ---------------------------------------------------------------------------


def create_access_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
    )


# ---------------------------------------------------------------------------
# User lookups
# ---------------------------------------------------------------------------


def get_user_by_id(db: Session, user_id: uuid.UUID) -> User | None:
    return db.get(User, user_id)


def get_user_by_login(db: Session, login: str) -> User | None:
    """Find a user by username or e-mail."""
    return db.execute(
        select(User).where(or_(User.username == login, User.email == login.lower()))
    ).scalar_one_or_none()


def authenticate(db: Session, login: str, password: str) -> User:
    user = get_user_by_login(db, login)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthorizationError("User account is deactivated")
    return user


# ---------------------------------------------------------------------------
# E-mail confirmation (second login step)
# ---------------------------------------------------------------------------


def generate_confirmation_code() -> str:
    """Six upper-case hex characters."""
    return secrets.token_hex(3).upper()


def create_email_confirmation(
    db: Session,
    user: User,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> EmailConfirmation:
    now = _utcnow()
    confirmation = EmailConfirmation(
        user_id=user.id,
        email=user.email,
        confirmation_code=generate_confirmation_code(),
        expires_at=now + timedelta(minutes=settings.EMAIL_CONFIRMATION_EXPIRE_MINUTES),
        ip_address=ip_address,
        user_agent=user_agent,
        created_at=now,
    )
    db.add(confirmation)
    db.commit()
    db.refresh(confirmation)
    return confirmation


def ensure_resend_allowed(db: Session, user_id: uuid.UUID) -> None:
    """Reject a resend while the previous code is younger than the cooldown."""
    cutoff = _utcnow() - timedelta(seconds=settings.EMAIL_RESEND_COOLDOWN_SECONDS)
    recent = db.execute(
        select(func.count())
        .select_from(EmailConfirmation)
        .where(EmailConfirmation.user_id == user_id, EmailConfirmation.created_at > cutoff)
    ).scalar_one()
    if recent:
        raise RateLimitedError("Please wait before requesting another confirmation email")


def confirm_email_code(db: Session, user_id: uuid.UUID, code: str) -> User:
    """Consume a pending confirmation code and return its user."""
    confirmation = db.execute(
        select(EmailConfirmation)
        .where(
            EmailConfirmation.user_id == user_id,
            EmailConfirmation.confirmation_code == code.strip().upper(),
            EmailConfirmation.used_at.is_(None),
            EmailConfirmation.expires_at > _utcnow(),
        )
        .order_by(EmailConfirmation.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
    if confirmation is None:
        raise AuthenticationError("Invalid or expired confirmation code")

    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if not user.is_active:
        raise AuthorizationError("User account is deactivated")

    confirmation.used_at = _utcnow()
    db.commit()
    return user


async def send_confirmation_email(email: str, code: str) -> None:
    """POST ``{"email", "special"}`` to the e-mail workflow webhook.

    Raises DeliveryError when the workflow is not configured, unreachable or
    answers with a non-2xx status.
    """
    if not settings.EMAIL_WORKFLOW_URL:
        raise DeliveryError("E-mail delivery is not configured")

    try:
        async with httpx.AsyncClient(timeout=settings.EMAIL_WORKFLOW_TIMEOUT_SECONDS) as client:
            response = await client.post(
                settings.EMAIL_WORKFLOW_URL,
                json={"email": email, "special": code},
            )
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error(
            "E-mail workflow returned %d for %s: %s",
            exc.response.status_code,
            email,
            exc.response.text[:200],
        )
        raise DeliveryError("Failed to send confirmation email") from exc
    except httpx.HTTPError as exc:
        logger.error("E-mail workflow request failed for %s: %s", email, exc)
        raise DeliveryError("Failed to send confirmation email") from exc

    logger.info("Confirmation e-mail sent to %s", email)
