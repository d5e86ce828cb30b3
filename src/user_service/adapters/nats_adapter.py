"""
NATS publisher for user events.

Messages are published to ``<topic>.<user_id>`` so that a JetStream stream
bound to ``<topic>.>`` stores all events of one user in order. Each publish
carries a reply subject on a private inbox; the stream's PubAck (or error)
arrives there and is drained as a delivery report.
"""
import json
import logging
from typing import AsyncIterator

import nats
from nats.aio.client import Client as NatsClient
from nats.aio.msg import Msg
from nats.aio.subscription import Subscription

from ..schemas import UserEvent
from .base import DeliveryReport, UserEventPublisher

logger = logging.getLogger(__name__)

# Header JetStream uses for de-duplication within its duplicate window
MSG_ID_HEADER = "Nats-Msg-Id"
STATUS_HEADER = "Status"
NO_RESPONDERS_STATUS = "503"


class NatsUserEventPublisher(UserEventPublisher):
    """
    NATS publisher for user events.

    Features:
    - Automatic reconnection
    - Per-user subjects for ordering by key
    - JetStream PubAck replies observed as delivery reports
    """

    def __init__(
        self,
        url: str = "nats://localhost:4222",
        topic: str = "user-service.user-events",
        reconnect_time_wait: int = 2,
        max_reconnect_attempts: int = -1,
    ):
        """
        Initialize the NATS publisher.

        Args:
            url: NATS server URL
            topic: Subject prefix all user events are published under
            reconnect_time_wait: Time to wait between reconnection attempts (seconds)
            max_reconnect_attempts: Max reconnection attempts (-1 for infinite)
        """
        super().__init__(topic)
        self._url = url
        self._reconnect_time_wait = reconnect_time_wait
        self._max_reconnect_attempts = max_reconnect_attempts
        self._client: NatsClient | None = None
        self._ack_inbox: str | None = None
        self._ack_sub: Subscription | None = None

    async def connect(self) -> None:
        """Connect to NATS server with auto-reconnection."""
        if self._client is not None and self._client.is_connected:
            logger.warning("Already connected to NATS")
            return

        logger.info(f"Connecting to NATS at {self._url}")

        try:
            self._client = await nats.connect(
                servers=[self._url],
                reconnect_time_wait=self._reconnect_time_wait,
                max_reconnect_attempts=self._max_reconnect_attempts,
                error_cb=self._error_callback,
                disconnected_cb=self._disconnected_callback,
                reconnected_cb=self._reconnected_callback,
                closed_cb=self._closed_callback,
            )
            self._ack_inbox = self._client.new_inbox()
            self._ack_sub = await self._client.subscribe(f"{self._ack_inbox}.*")
            logger.info(f"Connected to NATS server: {self._client.connected_url}")
        except Exception as e:
            logger.error(f"Failed to connect to NATS: {e}")
            raise ConnectionError(f"Failed to connect to NATS at {self._url}: {e}") from e

    async def disconnect(self) -> None:
        """Stop draining delivery reports, then drain and close the connection."""
        if self._client is None:
            return

        logger.info("Disconnecting from NATS")
        await self._stop_delivery_reports()

        if self._ack_sub is not None:
            try:
                await self._ack_sub.unsubscribe()
            except Exception as e:
                logger.warning(f"Error unsubscribing from {self._ack_inbox}: {e}")
            self._ack_sub = None

        try:
            await self._client.drain()
        except Exception as e:
            logger.warning(f"Error draining NATS connection: {e}")

        self._client = None
        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS."""
        return self._client is not None and self._client.is_connected

    async def _produce(self, key: str, value: bytes, event: UserEvent) -> None:
        subject = self._key_to_subject(key)
        await self._client.publish(
            subject,
            value,
            reply=f"{self._ack_inbox}.{event.id}",
            headers={MSG_ID_HEADER: event.id},
        )
        logger.debug(f"Published user event {event.id} to {subject}")

    async def _delivery_reports(self) -> AsyncIterator[DeliveryReport]:
        async for msg in self._ack_sub.messages:
            yield self._to_delivery_report(msg)

    def _key_to_subject(self, key: str) -> str:
        """
        Convert an ordering key to a NATS subject.

        Examples:
            "c4fa0ff4-71a6" -> "user-service.user-events.c4fa0ff4-71a6"
            "" -> "user-service.user-events._"
        """
        token = key.replace(".", "_").replace(" ", "_") if key else "_"
        return f"{self._topic}.{token}"

    def _to_delivery_report(self, msg: Msg) -> DeliveryReport:
        event_id = msg.subject.rsplit(".", 1)[-1]
        headers = msg.headers or {}

        if headers.get(STATUS_HEADER) == NO_RESPONDERS_STATUS:
            return DeliveryReport(
                topic=self._topic,
                event_id=event_id,
                error="no responders: no stream is bound to the subject",
            )

        try:
            ack = json.loads(msg.data.decode("utf-8")) if msg.data else {}
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return DeliveryReport(
                topic=self._topic,
                event_id=event_id,
                error=f"unreadable acknowledgement: {e}",
            )

        if "error" in ack:
            error = ack["error"]
            description = error.get("description") if isinstance(error, dict) else str(error)
            return DeliveryReport(topic=self._topic, event_id=event_id, error=description)

        return DeliveryReport(
            topic=self._topic,
            event_id=event_id,
            stream=ack.get("stream"),
            offset=ack.get("seq"),
        )

    # NATS callbacks for connection lifecycle

    async def _error_callback(self, e: Exception) -> None:
        """Called on NATS errors."""
        logger.error(f"NATS error: {e}")

    async def _disconnected_callback(self) -> None:
        """Called when disconnected from NATS."""
        logger.warning("Disconnected from NATS server")

    async def _reconnected_callback(self) -> None:
        """Called when reconnected to NATS."""
        logger.info(f"Reconnected to NATS server: {self._client.connected_url}")

    async def _closed_callback(self) -> None:
        """Called when NATS connection is closed."""
        logger.info("NATS connection closed")
