"""
In-memory publisher for user events.

This publisher is primarily used for:
- Local development without a running message bus
- Unit testing

Messages are kept in memory per key, and every accepted message produces a
delivery report the same way a real broker client would.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List

from ..schemas import UserEvent
from .base import DeliveryReport, PublishError, UserEventPublisher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemoryMessage:
    """A message accepted by the in-memory broker."""
    topic: str
    key: str
    value: bytes
    offset: int


class MemoryUserEventPublisher(UserEventPublisher):
    """
    In-memory user event publisher for development and testing.

    Features:
    - Per-key message log (ordering by user id)
    - Bounded local queue; enqueue fails once it is full
    - Delivery reports drained like a real broker client
    """

    def __init__(self, topic: str = "user-service.user-events", max_pending: int = 1000):
        """
        Initialize the memory publisher.

        Args:
            topic: Destination name recorded on each message
            max_pending: Max delivery reports waiting to be drained
        """
        super().__init__(topic)
        self._connected = False
        self._max_pending = max_pending
        self._log: List[MemoryMessage] = []
        self._by_key: Dict[str, List[MemoryMessage]] = {}
        self._reports: asyncio.Queue[DeliveryReport] = asyncio.Queue(maxsize=max_pending)

    async def connect(self) -> None:
        """Mark publisher as connected."""
        if self._connected:
            logger.warning("Memory publisher already connected")
            return

        self._connected = True
        logger.info("Memory publisher connected (in-memory mode)")

    async def disconnect(self) -> None:
        """Stop draining delivery reports and disconnect."""
        await self._stop_delivery_reports()
        self._connected = False
        logger.info("Memory publisher disconnected")

    @property
    def is_connected(self) -> bool:
        """Check if publisher is connected."""
        return self._connected

    @property
    def messages(self) -> List[MemoryMessage]:
        """All accepted messages, in enqueue order."""
        return list(self._log)

    def messages_for_key(self, key: str) -> List[MemoryMessage]:
        """Accepted messages for one key, in enqueue order."""
        return list(self._by_key.get(key, []))

    async def _produce(self, key: str, value: bytes, event: UserEvent) -> None:
        if self._reports.full():
            raise PublishError(f"Local queue full ({self._max_pending} messages pending)")

        message = MemoryMessage(topic=self._topic, key=key, value=value, offset=len(self._log))
        self._log.append(message)
        self._by_key.setdefault(key, []).append(message)

        self._reports.put_nowait(DeliveryReport(
            topic=self._topic,
            event_id=event.id,
            stream="memory",
            offset=message.offset,
        ))

    async def _delivery_reports(self) -> AsyncIterator[DeliveryReport]:
        while True:
            yield await self._reports.get()
