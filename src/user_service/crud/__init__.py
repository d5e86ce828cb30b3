"""
CRUD operations and change feed for user service.
"""

from .users import UserCRUD, UserNotFoundError, user_crud
from .changes import (
    ChangeCursor,
    ChangeDocument,
    ChangeFeed,
    ChangeFeedError,
    ChangeStreamOptions,
)

__all__ = [
    "UserCRUD",
    "UserNotFoundError",
    "user_crud",
    "ChangeCursor",
    "ChangeDocument",
    "ChangeFeed",
    "ChangeFeedError",
    "ChangeStreamOptions",
]
