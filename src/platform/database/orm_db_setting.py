"""
SQLAlchemy async engine and session management

This module provides:
1. AsyncEngineManager: event-loop aware read/write engines
2. Base: declarative base for every table of the service
3. dialect_insert: INSERT builder with ON CONFLICT support for the bound dialect

Read-Write Separation:
- Write operations (webhooks, ledger, transfers) always use the primary database
- Report queries may use a read replica when POSTGRES_REPLICA_SERVER is set
"""

import asyncio
from typing import Any, AsyncGenerator, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


class AsyncEngineManager:
    """
    Manages SQLAlchemy async engines with event loop awareness.

    Ensures engines are always bound to the current event loop to prevent
    "Task got Future attached to a different loop" errors (pytest-asyncio
    creates a loop per test).
    """

    def __init__(self) -> None:
        self._write_engine: Optional[AsyncEngine] = None
        self._read_engine: Optional[AsyncEngine] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._write_session_maker: Optional[async_sessionmaker[AsyncSession]] = None
        self._read_session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    def get_engine(self, *, read_only: bool = False) -> AsyncEngine:
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            if read_only:
                if self._read_engine is None:
                    self._read_engine = _create_engine(
                        settings.DATABASE_READ_URL_ASYNC, read_only=True
                    )
                return self._read_engine
            if self._write_engine is None:
                self._write_engine = _create_engine(settings.DATABASE_URL_ASYNC, read_only=False)
            return self._write_engine

        if self._loop is not current_loop:
            if self._write_engine is not None or self._read_engine is not None:
                Logger.base.warning('🔄 [DB] Event loop changed, dropping old engines')
                self._write_session_maker = None
                self._read_session_maker = None

            Logger.base.info(f'🔗 [DB] Creating engines for event loop {id(current_loop)}')
            self._write_engine = _create_engine(settings.DATABASE_URL_ASYNC, read_only=False)
            self._read_engine = _create_engine(settings.DATABASE_READ_URL_ASYNC, read_only=True)
            self._loop = current_loop

        engine = self._read_engine if read_only else self._write_engine
        assert engine is not None
        return engine

    def get_session_maker(self, *, read_only: bool = False) -> async_sessionmaker[AsyncSession]:
        engine = self.get_engine(read_only=read_only)

        if read_only:
            if self._read_session_maker is None:
                self._read_session_maker = async_sessionmaker(
                    engine, class_=AsyncSession, expire_on_commit=False
                )
            return self._read_session_maker

        if self._write_session_maker is None:
            self._write_session_maker = async_sessionmaker(
                engine, class_=AsyncSession, expire_on_commit=False
            )
        return self._write_session_maker

    async def dispose(self) -> None:
        for engine in (self._write_engine, self._read_engine):
            if engine is not None:
                await engine.dispose()
        self._write_engine = None
        self._read_engine = None
        self._write_session_maker = None
        self._read_session_maker = None
        self._loop = None


def _create_engine(url: str, *, read_only: bool) -> AsyncEngine:
    if url.startswith('sqlite'):
        # SQLite (local runs) has no server-side pool to size
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE_READ if read_only else settings.DB_POOL_SIZE_WRITE,
        max_overflow=settings.DB_POOL_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
    )


_engine_manager = AsyncEngineManager()


def get_engine(*, read_only: bool = False) -> AsyncEngine:
    return _engine_manager.get_engine(read_only=read_only)


def get_session_maker(*, read_only: bool = False) -> async_sessionmaker[AsyncSession]:
    return _engine_manager.get_session_maker(read_only=read_only)


async def dispose_engines() -> None:
    await _engine_manager.dispose()


class Base(DeclarativeBase):
    pass


def dialect_insert(session: AsyncSession, model: Any) -> Any:
    """
    Build an INSERT for `model` that supports ON CONFLICT on the session's dialect.

    Both PostgreSQL and SQLite expose on_conflict_do_nothing / on_conflict_do_update,
    which is what the insert-if-absent and upsert primitives of the repositories need.
    """
    dialect_name = session.bind.dialect.name if session.bind is not None else 'postgresql'
    if dialect_name == 'sqlite':
        return sqlite.insert(model)
    return postgresql.insert(model)


async def create_db_and_tables() -> None:
    """Create database tables if they don't exist"""
    # Models register themselves on Base.metadata when imported
    import src.service.reconciliation.driven_adapter.model  # noqa: F401

    try:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    except Exception as e:
        error_msg = str(e).lower()
        if any(
            keyword in error_msg
            for keyword in ['already exists', 'duplicate key', 'unique constraint']
        ):
            Logger.base.info('Tables already exist, skipping creation')
        else:
            Logger.base.error(f'Error creating tables: {e}')
            raise


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Write session for FastAPI Depends (rolled back on exception by the context manager)"""
    session_maker = get_session_maker(read_only=False)
    async with session_maker() as session:
        yield session


async def get_async_read_session() -> AsyncGenerator[AsyncSession, None]:
    """Read session (replica when configured, primary otherwise)"""
    session_maker = get_session_maker(read_only=True)
    async with session_maker() as session:
        yield session

