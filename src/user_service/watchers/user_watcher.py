"""
Change feed watcher for users.

Opens a cursor on the user change feed, decodes every change document into
a ``UserEvent`` and hands the events to a single consumer through a
one-slot queue, so the feed is never read faster than events are consumed.
"""
import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Optional, Tuple, TypeVar

from pydantic import ValidationError

from ..crud import ChangeDocument, ChangeFeed, ChangeFeedError, ChangeStreamOptions
from ..schemas import User, UserEvent, operation_to_enum

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def wait_or_stop(
    awaitable: Awaitable[T],
    stop_event: asyncio.Event,
    finished: Optional[asyncio.Future] = None,
) -> Tuple[bool, Optional[T]]:
    """
    Await ``awaitable`` unless ``stop_event`` is set (or ``finished`` completes) first.

    Returns:
        (True, result) if the awaitable completed, (False, None) otherwise.
        A pending awaitable is cancelled when the wait gives up.
    """
    operation = asyncio.ensure_future(awaitable)
    stopper = asyncio.ensure_future(stop_event.wait())
    waiters = {operation, stopper}
    if finished is not None:
        waiters.add(finished)

    try:
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        operation.cancel()
        raise
    finally:
        stopper.cancel()

    if operation.done() and not operation.cancelled():
        return True, operation.result()

    operation.cancel()
    return False, None


class UserChangeFeedWatcher:
    """
    Watches the user change feed and emits ``UserEvent`` objects.

    Each call to ``watch_users`` opens a fresh cursor at the current end of
    the feed; there is no checkpoint resumption.
    """

    def __init__(
        self,
        change_feed: ChangeFeed,
        options: Optional[ChangeStreamOptions] = None,
    ):
        self._change_feed = change_feed
        self._options = options or ChangeStreamOptions()

    def watch_users(self, stop_event: asyncio.Event) -> AsyncIterator[UserEvent]:
        """
        Start watching and return the lazy event sequence.

        The sequence ends when ``stop_event`` is set or the cursor fails.
        Must be called from a running event loop.
        """
        handoff: asyncio.Queue[UserEvent] = asyncio.Queue(maxsize=1)
        task = asyncio.create_task(
            self._watch(handoff, stop_event),
            name="user-change-feed-watcher",
        )
        return self._iterate(handoff, stop_event, task)

    async def _iterate(
        self,
        handoff: asyncio.Queue,
        stop_event: asyncio.Event,
        task: asyncio.Task,
    ) -> AsyncIterator[UserEvent]:
        try:
            while not stop_event.is_set():
                if task.done() and handoff.empty():
                    return
                received, user_event = await wait_or_stop(handoff.get(), stop_event, task)
                if received and not stop_event.is_set():
                    yield user_event
        finally:
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _watch(self, handoff: asyncio.Queue, stop_event: asyncio.Event) -> None:
        try:
            cursor = await self._change_feed.open(self._options)
        except ChangeFeedError as e:
            logger.error(f"Failed to open change stream: {e}")
            return

        logger.info("Started watching for user changes.")
        try:
            while True:
                change_doc = await cursor.next(stop_event)
                if change_doc is None:
                    logger.info("Stop requested, stopping watch.")
                    return

                user_event = self._to_user_event(change_doc)
                delivered, _ = await wait_or_stop(handoff.put(user_event), stop_event)
                if not delivered:
                    logger.info("Stop requested while handing off event, stopping watch.")
                    return
        except ChangeFeedError as e:
            logger.error(f"Error processing next change: {e}")
        finally:
            await cursor.close()

    def _to_user_event(self, change_doc: ChangeDocument) -> UserEvent:
        logger.debug(f"Change doc: {change_doc}")

        after_change = self._decode_user(change_doc.get("fullDocument"), "fullDocument")
        before_change = self._decode_user(
            change_doc.get("fullDocumentBeforeChange"),
            "fullDocumentBeforeChange",
        )
        user_id = self._determine_user_id(before_change, after_change)
        if not user_id:
            logger.warning(
                f"Change {change_doc.get('_id')} carries no decodable user document; "
                "publishing event with empty user id"
            )

        return UserEvent(
            user_id=user_id,
            before_change=before_change,
            after_change=after_change,
            operation_type=operation_to_enum(change_doc.get("operationType")),
        )

    def _decode_user(self, document: Any, field: str) -> Optional[User]:
        if document is None:
            logger.debug(f"No {field} in change document.")
            return None
        if not isinstance(document, dict):
            logger.warning(
                f"Failed to decode {field}: expected a document, got {type(document).__name__}"
            )
            return None

        fields = {k: v for k, v in document.items() if k != "_id"}
        fields["id"] = document.get("_id")
        try:
            user = User.model_validate(fields)
        except ValidationError as e:
            logger.warning(f"Failed to decode {field}: {e}")
            return None

        logger.debug(f"{field} decoded successfully: {user.id}")
        return user

    @staticmethod
    def _determine_user_id(before_change: Optional[User], after_change: Optional[User]) -> str:
        if before_change is not None:
            return before_change.id
        if after_change is not None:
            return after_change.id
        return ""
