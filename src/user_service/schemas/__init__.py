"""
Pydantic DTOs for the user service.
"""

from .base import BaseDTO
from .user import (
    User,
    CreateUserRequest,
    UpdateUserRequest,
    ListUsersQuery,
    ListUsersResponse,
)
from .events import OperationType, UserEvent, operation_to_enum

__all__ = [
    "BaseDTO",
    "User",
    "CreateUserRequest",
    "UpdateUserRequest",
    "ListUsersQuery",
    "ListUsersResponse",
    "OperationType",
    "UserEvent",
    "operation_to_enum",
]
