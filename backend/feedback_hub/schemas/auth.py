import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

UserRole = Literal["user", "admin"]


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, description="Username or e-mail")
    password: str = Field(..., min_length=1)


class ConfirmEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: uuid.UUID = Field(..., alias="userId")
    confirmation_code: str = Field(..., min_length=1, max_length=16, alias="confirmationCode")


class ResendConfirmationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: uuid.UUID = Field(..., alias="userId")


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=150)
    email: str = Field(..., min_length=5, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole = "user"


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str | None = Field(None, min_length=3, max_length=150)
    email: str | None = Field(None, min_length=5, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    current_password: str | None = Field(None, alias="currentPassword")
    new_password: str | None = Field(None, min_length=6, max_length=128, alias="newPassword")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Confirmation email sent"
    requires_confirmation: bool = Field(True, alias="requiresConfirmation")
    user_id: uuid.UUID = Field(..., alias="userId")
    email: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class UserMessageResponse(BaseModel):
    message: str
    user: UserResponse
