"""
CRUD operations for users.

Every mutation appends a row to the change journal in the same session, so
the journal commits or rolls back together with the user row.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select, text

from ..models import UserTable, UserChangeTable
from ..schemas import ListUsersQuery, UpdateUserRequest, User


DEFAULT_PAGE_SIZE = 10

# Transaction-scoped advisory lock serializing journal appends on PostgreSQL
JOURNAL_LOCK_KEY = "user_changes"
JOURNAL_LOCK_SQL = text("SELECT pg_advisory_xact_lock(hashtext(:key))")


class UserNotFoundError(Exception):
    """Raised when a user does not exist."""

    def __init__(self, user_id: str):
        super().__init__(f"user {user_id} not found")
        self.user_id = user_id


def as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored timestamps are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserCRUD:
    """CRUD operations for users."""

    async def create_user(
        self,
        db: AsyncSession,
        user: User,
        hashed_password: str
    ) -> UserTable:
        """
        Insert a new user and journal an ``insert`` change.

        Args:
            db: Database session
            user: Fully populated user snapshot (id and timestamps set)
            hashed_password: Password hash to store

        Returns:
            Created UserTable instance
        """
        user_table = UserTable(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            hashed_password=hashed_password,
            country=user.country,
            nickname=user.nickname,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        db.add(user_table)
        await db.flush()

        await self._record_change(db, "insert", user_table.id, after=self.to_document(user_table))
        await db.flush()
        return user_table

    async def update_user(
        self,
        db: AsyncSession,
        user_id: str,
        changes: UpdateUserRequest,
        updated_at: datetime
    ) -> UserTable:
        """
        Replace the profile fields of a user and journal an ``update`` change.

        ``created_at`` and the password hash are preserved.

        Raises:
            UserNotFoundError: If no user has this id
        """
        user_table = await self.get_user_by_id(db, user_id)
        if user_table is None:
            raise UserNotFoundError(user_id)

        before = self.to_document(user_table)

        user_table.first_name = changes.first_name
        user_table.last_name = changes.last_name
        user_table.email = str(changes.email)
        user_table.country = changes.country
        user_table.nickname = changes.nickname
        user_table.updated_at = updated_at
        await db.flush()

        await self._record_change(
            db, "update", user_table.id,
            after=self.to_document(user_table),
            before=before,
        )
        await db.flush()
        return user_table

    async def delete_user_by_id(self, db: AsyncSession, user_id: str) -> None:
        """
        Delete a user and journal a ``delete`` change carrying the pre-image.

        Raises:
            UserNotFoundError: If no user has this id
        """
        user_table = await self.get_user_by_id(db, user_id)
        if user_table is None:
            raise UserNotFoundError(user_id)

        before = self.to_document(user_table)
        await db.delete(user_table)
        await db.flush()

        await self._record_change(db, "delete", user_id, before=before)
        await db.flush()

    async def get_user_by_id(
        self,
        db: AsyncSession,
        user_id: str
    ) -> Optional[UserTable]:
        """Get a user by id, or None."""
        result = await db.execute(
            select(UserTable).where(UserTable.id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_users(
        self,
        db: AsyncSession,
        query: ListUsersQuery
    ) -> Tuple[List[UserTable], int, int]:
        """
        List users matching exact-match filters, one page at a time.

        Returns:
            Tuple of (page rows, total matching count, effective page size)
        """
        page_size = query.page_size or DEFAULT_PAGE_SIZE

        conditions = []
        if query.country is not None:
            conditions.append(UserTable.country == query.country)
        if query.first_name is not None:
            conditions.append(UserTable.first_name == query.first_name)
        if query.last_name is not None:
            conditions.append(UserTable.last_name == query.last_name)
        if query.nickname is not None:
            conditions.append(UserTable.nickname == query.nickname)
        if query.email is not None:
            conditions.append(UserTable.email == query.email)

        count_result = await db.execute(
            select(func.count()).select_from(UserTable).where(*conditions)
        )
        total_count = count_result.scalar_one()

        result = await db.execute(
            select(UserTable)
            .where(*conditions)
            .order_by(UserTable.created_at, UserTable.id)
            .offset(query.page * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total_count, page_size

    async def _record_change(
        self,
        db: AsyncSession,
        operation_type: str,
        document_key: str,
        after: Optional[Dict[str, Any]] = None,
        before: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Append a journal row.

        On PostgreSQL the append first takes a transaction-scoped advisory lock,
        so journal rows commit in ``seq`` order and a cursor tailing
        ``seq > last`` never passes a row that commits later.
        SQLite already serializes writers.
        """
        if db.get_bind().dialect.name == "postgresql":
            await db.execute(JOURNAL_LOCK_SQL, {"key": JOURNAL_LOCK_KEY})

        db.add(UserChangeTable(
            operation_type=operation_type,
            document_key=document_key,
            full_document=after,
            full_document_before_change=before,
            cluster_time=datetime.now(timezone.utc),
        ))

    def to_document(self, user: UserTable) -> Dict[str, Any]:
        """
        Render a user row as the JSON document stored in the change journal.

        The password hash is left out of journal documents.
        """
        return {
            "_id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "country": user.country,
            "nickname": user.nickname,
            "created_at": as_utc(user.created_at).isoformat(),
            "updated_at": as_utc(user.updated_at).isoformat(),
        }

    def user_to_dto(self, user: UserTable) -> User:
        """Convert UserTable to a User snapshot."""
        return User(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            country=user.country,
            nickname=user.nickname,
            created_at=as_utc(user.created_at),
            updated_at=as_utc(user.updated_at),
        )


# Singleton instance
user_crud = UserCRUD()
