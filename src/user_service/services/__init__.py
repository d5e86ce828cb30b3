"""
Service layer for user service.
"""
from .user_service import UserService, utc_now

__all__ = ["UserService", "utc_now"]
