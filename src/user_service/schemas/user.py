"""
User DTOs.

These models are decoupled from the ORM and are used by the API, the
service layer and the change-feed relay.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, EmailStr, Field, field_validator

from .base import BaseDTO


class User(BaseDTO):
    """
    Snapshot of a user record at a point in time.

    Immutable once built. The password hash is never part of a snapshot.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique identifier of the user.")
    first_name: str = Field(..., description="First name.")
    last_name: str = Field(default="", description="Last name.")
    email: str = Field(..., description="Email address.")
    country: str = Field(default="", description="Country code.")
    nickname: str = Field(default="", description="Nickname.")
    created_at: datetime = Field(..., description="When the user was created (UTC).")
    updated_at: datetime = Field(..., description="When the user was last updated (UTC).")


class CreateUserRequest(BaseDTO):
    """Request body for creating a user."""
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    country: str = Field(..., min_length=2, max_length=100)
    nickname: str = Field(default="", max_length=255)

    @field_validator("password")
    @classmethod
    def password_not_blank(cls, value: str) -> str:
        """Reject whitespace-only passwords; the value is otherwise kept as sent."""
        if not value.strip():
            raise ValueError("password must not be blank")
        return value


class UpdateUserRequest(BaseDTO):
    """Request body for updating a user. All profile fields are replaced."""
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    country: str = Field(..., min_length=2, max_length=100)
    nickname: str = Field(default="", max_length=255)


class ListUsersQuery(BaseDTO):
    """Filters and pagination for listing users. Filters are exact matches."""
    page: int = Field(default=0, ge=0, description="Zero-based page number.")
    page_size: int = Field(default=10, ge=0, le=100, description="Page size (0 means default).")
    country: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nickname: Optional[str] = None
    email: Optional[str] = None


class ListUsersResponse(BaseDTO):
    """A page of users."""
    page: int
    page_size: int
    total_count: int
    results: List[User]
