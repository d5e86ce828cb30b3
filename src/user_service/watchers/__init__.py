"""
Change feed watchers.
"""
from .user_watcher import UserChangeFeedWatcher, wait_or_stop

__all__ = ["UserChangeFeedWatcher", "wait_or_stop"]
