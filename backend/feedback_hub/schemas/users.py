from pydantic import BaseModel, Field

from feedback_hub.schemas.auth import UserResponse, UserRole


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=150)
    email: str = Field(..., min_length=5, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole = "user"


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=150)
    email: str | None = Field(None, min_length=5, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str | None = Field(None, min_length=6, max_length=128)
    role: UserRole | None = None
    is_active: bool | None = None


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int
    page: int
    page_size: int
