"""
Background tasks: the user change-feed relay.
"""
import asyncio
import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..services import UserService

logger = logging.getLogger(__name__)


class BackgroundTaskManager:
    """Manages background tasks for the application."""

    def __init__(self):
        self._relay_task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """True while the relay task is alive."""
        return self._running and self._relay_task is not None and not self._relay_task.done()

    async def start(self, user_service: "UserService") -> None:
        """Start relaying user changes."""
        if self._running:
            logger.warning("Background tasks are already running")
            return

        self._stop_event = asyncio.Event()
        self._relay_task = user_service.start_watching_users(self._stop_event)
        self._running = True
        logger.info("Background tasks started")

    async def stop(self, timeout: float = 10.0) -> None:
        """
        Signal the relay to stop and wait for it to unwind.

        The relay is cancelled outright if it does not finish within ``timeout`` seconds.
        """
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        try:
            await asyncio.wait_for(self._relay_task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"User change relay did not stop within {timeout}s, cancelled")
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"User change relay failed: {e}", exc_info=True)

        logger.info("Background tasks stopped")


# Global instance
background_task_manager = BackgroundTaskManager()
