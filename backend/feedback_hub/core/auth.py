import uuid

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from feedback_hub.core.database import get_db
from feedback_hub.core.exceptions import AuthenticationError, AuthorizationError
from feedback_hub.models.user import User
from feedback_hub.services.auth import decode_token, get_user_by_id

security = HTTPBearer()


def _access_subject(token: str) -> uuid.UUID:
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid token")

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")
    try:
        return uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise AuthenticationError("Invalid token payload")


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the signed-in user from a Bearer access token.

    Access tokens are only issued once the e-mailed confirmation code has
    been accepted.
    """
    user = get_user_by_id(db, _access_subject(credentials.credentials))
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthorizationError("User account is deactivated")
    return user


def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user
