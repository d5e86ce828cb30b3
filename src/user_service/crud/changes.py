"""
Change feed over the user change journal.

A ``ChangeCursor`` tails ``user_changes`` in ``seq`` order starting at the
journal head observed when it was opened, and hands back one change
document per journal row. Documents use the familiar change-stream shape::

    {
        "_id": {"seq": 42},
        "operationType": "update",
        "documentKey": {"_id": "c4fa0ff4-..."},
        "clusterTime": datetime(...),
        "fullDocument": {...},
        "fullDocumentBeforeChange": {...},
    }
"""
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Literal, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import UserChangeTable

logger = logging.getLogger(__name__)

ChangeDocument = Dict[str, Any]


class ChangeFeedError(Exception):
    """Raised on cursor-level failures (lost connection, closed cursor)."""
    pass


@dataclass(frozen=True)
class ChangeStreamOptions:
    """
    Options for opening a change cursor.

    Attributes:
        full_document: Post-image mode; the journal always stores it ("updateLookup")
        full_document_before_change: "whenAvailable" to include pre-images, "off" to omit them
        batch_size: Max journal rows fetched per round trip
        poll_interval: Seconds to wait before polling an idle journal again
    """
    full_document: Literal["updateLookup"] = "updateLookup"
    full_document_before_change: Literal["whenAvailable", "off"] = "whenAvailable"
    batch_size: int = 100
    poll_interval: float = 0.5


class ChangeCursor:
    """Cursor over the change journal. Owned by a single task."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        options: ChangeStreamOptions,
        start_after: int,
    ):
        self._session_factory = session_factory
        self._options = options
        self._last_seq = start_after
        self._buffer: Deque[ChangeDocument] = deque()
        self._closed = False

    @property
    def position(self) -> int:
        """Sequence number of the last journal row fetched."""
        return self._last_seq

    @property
    def closed(self) -> bool:
        return self._closed

    async def next(self, stop_event: asyncio.Event) -> Optional[ChangeDocument]:
        """
        Block until the next change document is available.

        Returns:
            The next change document, or None once ``stop_event`` is set

        Raises:
            ChangeFeedError: If the cursor is closed or the journal cannot be read
        """
        while True:
            if self._closed:
                raise ChangeFeedError("cursor is closed")
            if stop_event.is_set():
                return None
            if self._buffer:
                return self._buffer.popleft()

            await self._fetch_batch()
            if self._buffer:
                continue

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._options.poll_interval)
            except asyncio.TimeoutError:
                pass

    async def close(self) -> None:
        """Close the cursor. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        logger.debug(f"Change cursor closed at seq {self._last_seq}")

    async def _fetch_batch(self) -> None:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(UserChangeTable)
                    .where(UserChangeTable.seq > self._last_seq)
                    .order_by(UserChangeTable.seq)
                    .limit(self._options.batch_size)
                )
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise ChangeFeedError(f"change stream error: {e}") from e

        for row in rows:
            self._buffer.append(self._to_change_document(row))
            self._last_seq = row.seq

    def _to_change_document(self, row: UserChangeTable) -> ChangeDocument:
        document: ChangeDocument = {
            "_id": {"seq": row.seq},
            "operationType": row.operation_type,
            "documentKey": {"_id": row.document_key},
            "clusterTime": row.cluster_time,
            "fullDocument": row.full_document,
        }
        if self._options.full_document_before_change != "off":
            document["fullDocumentBeforeChange"] = row.full_document_before_change
        return document


class ChangeFeed:
    """Opens cursors over the user change journal."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def open(self, options: Optional[ChangeStreamOptions] = None) -> ChangeCursor:
        """
        Open a cursor positioned at the current end of the journal.

        Raises:
            ChangeFeedError: If the journal head cannot be read
        """
        options = options or ChangeStreamOptions()
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(func.max(UserChangeTable.seq)))
                head = result.scalar_one_or_none() or 0
        except SQLAlchemyError as e:
            raise ChangeFeedError(f"failed to open change stream: {e}") from e

        logger.debug(f"Opened change cursor at seq {head}")
        return ChangeCursor(self._session_factory, options, start_after=head)
