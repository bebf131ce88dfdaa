"""
Inkpress Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling Strategy (PostgreSQL):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite (tests, local tinkering) uses SQLAlchemy's default pool for the
    dialect, which does not accept the sizing arguments.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Awaitable, Callable, Dict, List

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from inkpress.config import settings


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine: AsyncEngine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: response models are built from ORM objects after
# the service flushes; expiring them would trigger lazy loads outside a greenlet
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models share this metadata, which Alembic reads for autogenerate and
    the test suite uses for `create_all`.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
AFTER_COMMIT = "after_commit"
AFTER_ROLLBACK = "after_rollback"

SessionHook = Callable[[], Awaitable[None]]


def after_commit(session: AsyncSession, callback: SessionHook) -> None:
    """Runs `callback` once the request's transaction has committed."""
    session.info.setdefault(AFTER_COMMIT, []).append(callback)


def after_rollback(session: AsyncSession, callback: SessionHook) -> None:
    """Runs `callback` if the request's transaction is rolled back instead."""
    session.info.setdefault(AFTER_ROLLBACK, []).append(callback)


async def _run_hooks(session: AsyncSession, key: str) -> None:
    hooks: List[SessionHook] = session.info.pop(key, [])
    session.info.pop(AFTER_ROLLBACK if key == AFTER_COMMIT else AFTER_COMMIT, None)
    for hook in hooks:
        await hook()


@asynccontextmanager
async def managed_session(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """
    One unit of work: commit on success, roll back on error.

    File side effects wait for the outcome: uploads replaced or deleted by
    the request are removed only after COMMIT, and files stored by a request
    that rolls back are removed after ROLLBACK.
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            await _run_hooks(session, AFTER_ROLLBACK)
            raise
        await _run_hooks(session, AFTER_COMMIT)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction, then runs after_commit hooks
        4. On error: rolls back, runs after_rollback hooks, re-raises
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/posts")
        async def list_posts(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with managed_session(async_session_factory) as session:
        yield session


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_all_tables() -> None:
    """
    What:  Creates any missing tables from the ORM metadata.
    When:  Startup, only if DB_CREATE_ALL is set (Alembic is the normal path).
    """
    # Models must be imported so their tables are registered on Base.metadata
    import inkpress.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
