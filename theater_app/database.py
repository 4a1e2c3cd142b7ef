import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

from . import config
from .shared.db_errors import is_transient_connection_error

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_database_url() -> "str | URL":
    """Archive database URL from ARCHIVE_DATABASE_URL or the individual settings"""
    if config.ARCHIVE_DATABASE_URL:
        return config.ARCHIVE_DATABASE_URL
    return URL.create(
        drivername=config.ARCHIVE_DB_DRIVER,
        username=config.ARCHIVE_DB_USER,
        password=config.ARCHIVE_DB_PASSWORD or None,
        host=config.ARCHIVE_DB_HOST,
        port=config.ARCHIVE_DB_PORT,
        database=config.ARCHIVE_DB_NAME,
    )


def create_archive_engine(url: "str | URL | None" = None) -> AsyncEngine:
    """Create the pooled async engine for the archive store"""
    url = url or build_database_url()
    engine = create_async_engine(
        url,
        pool_pre_ping=True,  # Keep-alive: test connections before handing them out
        pool_recycle=config.ARCHIVE_DB_POOL_RECYCLE,
        pool_size=config.ARCHIVE_DB_POOL_SIZE,
        max_overflow=0,  # Hard cap; extra callers queue for pool_timeout seconds
        pool_timeout=config.ARCHIVE_DB_POOL_TIMEOUT,
        echo=False,
    )
    logger.info(
        f"📊 Archive connection pool: size={config.ARCHIVE_DB_POOL_SIZE}, "
        f"timeout={config.ARCHIVE_DB_POOL_TIMEOUT}s"
    )
    if config.ARCHIVE_DB_LOG_SLOW_QUERIES:
        _install_slow_query_logging(engine)
    return engine


def _install_slow_query_logging(engine: AsyncEngine) -> None:
    threshold = config.ARCHIVE_DB_SLOW_QUERY_THRESHOLD

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine.sync_engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > threshold:
            logger.warning(f"🐌 Slow archive query ({total:.2f}s): {statement[:200]}...")


class SchemaState:
    """Which archive tables have had their columns ensured in this process"""

    def __init__(self):
        self._ensured: set[str] = set()

    def is_ensured(self, table_name: str) -> bool:
        return table_name in self._ensured

    def mark_ensured(self, table_name: str) -> None:
        self._ensured.add(table_name)

    def reset(self, table_name: Optional[str] = None) -> None:
        if table_name is None:
            self._ensured.clear()
        else:
            self._ensured.discard(table_name)


class ArchiveDatabase:
    """Pooled connection source for the archive store"""

    def __init__(self, engine: AsyncEngine, schema_state: Optional[SchemaState] = None):
        self.engine = engine
        self.schema_state = schema_state or SchemaState()

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    async def _acquire(self) -> AsyncConnection:
        try:
            return await self.engine.connect()
        except (SQLAlchemyError, OSError) as e:
            if not is_transient_connection_error(e):
                raise
            logger.warning(f"⚠️ Transient archive connection error, retrying once: {e}")
            return await self.engine.connect()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Borrow a pooled connection; it is returned to the pool on every exit path"""
        conn = await self._acquire()
        try:
            yield conn
        finally:
            await conn.close()

    async def test_connection(self) -> dict:
        try:
            async with self.connection() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("✅ Archive database connected successfully")
            return {"success": True, "message": "Database connection successful"}
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"❌ Archive database connection failed: {e}")
            return {"success": False, "error": str(e)}

    async def dispose(self) -> None:
        await self.engine.dispose()


_database: Optional[ArchiveDatabase] = None


def get_database() -> ArchiveDatabase:
    """Process-wide archive database, created on first use"""
    global _database
    if _database is None:
        _database = ArchiveDatabase(create_archive_engine())
    return _database


def set_database(database: Optional[ArchiveDatabase]) -> None:
    """Replace the process-wide archive database (startup wiring and tests)"""
    global _database
    _database = database
