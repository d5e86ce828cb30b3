"""
Database models for user service.
"""

from .base import Base
from .user import UserTable, UserChangeTable

__all__ = [
    "Base",
    "UserTable",
    "UserChangeTable",
]
