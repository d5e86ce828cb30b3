"""
Tests for database engine setup.
"""
from sqlalchemy import inspect
from sqlalchemy.pool import NullPool

from user_service.core.database import SQLITE_BUSY_TIMEOUT, drop_db, engine, engine_options, init_db


class TestEngineOptions:
    def test_sqlite_gets_busy_timeout(self):
        options = engine_options("sqlite+aiosqlite:///./users.db", pooled=True)
        assert options["connect_args"] == {"timeout": SQLITE_BUSY_TIMEOUT}
        assert "poolclass" not in options

    def test_postgres_unpooled(self):
        options = engine_options("postgresql+asyncpg://user:pw@db:5432/users", pooled=False)
        assert "connect_args" not in options
        assert options["poolclass"] is NullPool


class TestSchemaLifecycle:
    async def test_drop_and_init(self):
        async def table_names():
            async with engine.connect() as conn:
                return set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))

        await drop_db()
        assert not {"users", "user_changes"} & await table_names()

        await init_db()
        assert {"users", "user_changes"} <= await table_names()
