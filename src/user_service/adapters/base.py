"""
Base publisher interface for user events.

All publishers implement this interface so the change-feed relay stays
independent of the message bus backing it (NATS, in-memory, ...).
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from ..schemas import UserEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryReport:
    """Outcome of a previously enqueued message, as reported by the broker."""
    topic: str
    event_id: str
    stream: Optional[str] = None
    offset: Optional[int] = None
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.error is None


class UserEventPublisher(ABC):
    """
    Abstract base class for user event publishers.

    ``send`` serializes an event and enqueues it on the broker client, keyed
    by user id. It returns as soon as the message is accepted locally; the
    broker's later acknowledgement or rejection is drained by one background
    task per publisher and only logged.
    """

    def __init__(self, topic: str):
        self._topic = topic
        self._report_task: Optional[asyncio.Task] = None

    @property
    def topic(self) -> str:
        """Fixed destination all user events are published to."""
        return self._topic

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the message bus.

        Raises:
            ConnectionError: If unable to connect to the message bus
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Gracefully disconnect from the message bus.

        Implementations must call ``_stop_delivery_reports`` before closing.
        """
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the publisher is connected to the message bus."""
        pass

    @abstractmethod
    async def _produce(self, key: str, value: bytes, event: UserEvent) -> None:
        """
        Enqueue a serialized message on the broker client.

        Args:
            key: Ordering key (user id)
            value: Serialized event
            event: The event being sent (for headers and correlation)

        Raises:
            Exception: Any failure to enqueue locally
        """
        pass

    @abstractmethod
    def _delivery_reports(self) -> AsyncIterator[DeliveryReport]:
        """Stream of delivery reports for enqueued messages."""
        pass

    @property
    def name(self) -> str:
        """Return the publisher name for logging."""
        return self.__class__.__name__

    async def send(self, event: UserEvent) -> None:
        """
        Publish a user event.

        Args:
            event: The event to publish

        Raises:
            ConnectionError: If not connected to the message bus
            PublishError: If the event could not be serialized or enqueued
        """
        if not self.is_connected:
            raise ConnectionError(f"{self.name} is not connected")

        try:
            value = event.to_message()
        except (TypeError, ValueError) as e:
            logger.error(f"Unable to serialize user event {event.id}: {e}")
            raise PublishError(f"Unable to serialize user event {event.id}: {e}") from e

        try:
            await self._produce(event.user_id, value, event)
        except PublishError:
            raise
        except Exception as e:
            logger.error(f"Unable to enqueue user event {event.id}: {e}")
            raise PublishError(f"Unable to enqueue user event {event.id}: {e}") from e

        logger.debug(f"Enqueued user event {event.id} for user {event.user_id}")
        self._ensure_delivery_reports()

    def _ensure_delivery_reports(self) -> None:
        """Start the delivery report drain unless one is already running."""
        if self._report_task is None or self._report_task.done():
            self._report_task = asyncio.create_task(
                self._drain_delivery_reports(),
                name=f"{self.name}-delivery-reports",
            )

    async def _drain_delivery_reports(self) -> None:
        try:
            async for report in self._delivery_reports():
                if report.delivered:
                    logger.info(
                        f"Successfully produced record {report.event_id} to topic {report.topic} "
                        f"[{report.stream}] @ offset {report.offset}"
                    )
                else:
                    logger.warning(f"Failed to deliver message {report.event_id}: {report.error}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Delivery report drain stopped: {e}", exc_info=True)

    async def _stop_delivery_reports(self) -> None:
        if self._report_task is None:
            return
        self._report_task.cancel()
        try:
            await self._report_task
        except asyncio.CancelledError:
            pass
        self._report_task = None


class AdapterError(Exception):
    """Base exception for publisher errors."""
    pass


class PublishError(AdapterError):
    """Raised when a message could not be serialized or enqueued."""
    pass
