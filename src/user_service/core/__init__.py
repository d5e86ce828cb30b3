"""
Core configuration and infrastructure for user service.
"""

from .config import settings, check_required_settings, Settings
from .database import (
    get_db,
    init_db,
    drop_db,
    engine,
    AsyncSessionLocal,
)
from .security import hash_password, verify_password
from .background_tasks import BackgroundTaskManager, background_task_manager

__all__ = [
    # Config
    "settings",
    "check_required_settings",
    "Settings",
    # Database
    "get_db",
    "init_db",
    "drop_db",
    "engine",
    "AsyncSessionLocal",
    # Security
    "hash_password",
    "verify_password",
    # Background tasks
    "BackgroundTaskManager",
    "background_task_manager",
]
