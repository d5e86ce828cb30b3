"""
Service layer for users and the change-feed relay.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Optional
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters import UserEventPublisher
from ..core.security import hash_password
from ..crud import UserCRUD, user_crud
from ..schemas import (
    CreateUserRequest,
    ListUsersQuery,
    ListUsersResponse,
    UpdateUserRequest,
    User,
    UserEvent,
)
from ..watchers import UserChangeFeedWatcher

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class UserService:
    """
    Service for managing users and relaying their changes to the event bus.

    CRUD methods take the request's database session. The relay needs a
    publisher and a watcher; services built without them only serve CRUD.
    """

    def __init__(
        self,
        crud: UserCRUD = user_crud,
        publisher: Optional[UserEventPublisher] = None,
        watcher: Optional[UserChangeFeedWatcher] = None,
    ):
        self._crud = crud
        self._publisher = publisher
        self._watcher = watcher

    @property
    def publisher(self) -> Optional[UserEventPublisher]:
        return self._publisher

    async def create_user(self, db: AsyncSession, request: CreateUserRequest) -> User:
        """
        Create a user with a fresh id and creation timestamps.

        Args:
            db: Database session
            request: Validated create request (plain-text password)

        Returns:
            The stored user snapshot
        """
        now = utc_now()
        user = User(
            id=str(uuid4()),
            first_name=request.first_name,
            last_name=request.last_name,
            email=str(request.email),
            country=request.country,
            nickname=request.nickname,
            created_at=now,
            updated_at=now,
        )
        try:
            await self._crud.create_user(db, user, hash_password(request.password))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Created user {user.id}")
        return user

    async def update_user(
        self,
        db: AsyncSession,
        user_id: str,
        request: UpdateUserRequest
    ) -> User:
        """
        Replace a user's profile fields.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        try:
            user_table = await self._crud.update_user(db, user_id, request, utc_now())
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Updated user {user_id}")
        return self._crud.user_to_dto(user_table)

    async def delete_user(self, db: AsyncSession, user_id: str) -> None:
        """
        Delete a user.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        try:
            await self._crud.delete_user_by_id(db, user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Deleted user {user_id}")

    async def list_users(self, db: AsyncSession, query: ListUsersQuery) -> ListUsersResponse:
        """List users matching the query's filters, one page at a time."""
        rows, total_count, page_size = await self._crud.list_users(db, query)
        return ListUsersResponse(
            page=query.page,
            page_size=page_size,
            total_count=total_count,
            results=[self._crud.user_to_dto(row) for row in rows],
        )

    def start_watching_users(self, stop_event: asyncio.Event) -> asyncio.Task:
        """
        Start relaying user changes to the event bus.

        Opens the watcher's event sequence and forwards it on a background
        task. The task ends once the sequence ends, which happens when
        ``stop_event`` is set or the change feed fails.
        """
        if self._watcher is None or self._publisher is None:
            raise RuntimeError("User change relay needs both a watcher and a publisher")

        user_events = self._watcher.watch_users(stop_event)
        return asyncio.create_task(
            self.dispatch_user_events(user_events),
            name="user-event-dispatch",
        )

    async def dispatch_user_events(self, user_events: AsyncIterator[UserEvent]) -> None:
        """
        Forward every event to the publisher in the order received.

        A failed send is logged and the event dropped; there is no retry.
        """
        async for user_event in user_events:
            try:
                await self._publisher.send(user_event)
            except Exception as e:
                logger.error(f"Error sending user event {user_event.id}: {e}")

        logger.info("User event sequence ended, relay stopped")
