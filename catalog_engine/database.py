import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Optional, TypeVar
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from catalog_engine.config import settings


logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE codes that mean "run the whole transaction again"
RETRYABLE_SQLSTATES = {
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
}


# SQLite doesn't support pool settings, check database type
is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# Convert database URL for proper driver
database_url = settings.DATABASE_URL
if database_url.startswith("postgresql+asyncpg://"):
    # Switch to psycopg for async PostgreSQL
    database_url = database_url.replace("postgresql+asyncpg://", "postgresql+psycopg://")
elif database_url.startswith("postgresql://"):
    database_url = database_url.replace("postgresql://", "postgresql+psycopg://")

# Create async engine with appropriate settings
if is_sqlite:
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        future=True,
        connect_args={"check_same_thread": False},
        # In-memory databases live only as long as their connection
        poolclass=StaticPool if ":memory:" in settings.DATABASE_URL else None,
    )
else:
    engine = create_async_engine(
        database_url,
        echo=settings.DEBUG,
        future=True,
        pool_pre_ping=True,  # Check connection health before use
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        connect_args={
            "connect_timeout": 30,  # Connection timeout in seconds
        },
    )

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


@asynccontextmanager
async def get_db_session():
    """Context manager for getting database session (for scripts and background jobs)."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database tables."""
    # Import all models to register them with Base.metadata
    from catalog_engine import models  # noqa: F401

    logger.info(f"Registered {len(Base.metadata.tables)} tables")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


# ====================
# LOCKING AND RETRIES
# ====================

def advisory_lock_key(entity_id: UUID) -> int:
    """
    Map a UUID onto the signed 64-bit key space of pg_advisory_xact_lock.

    The first eight bytes of the UUID are used; collisions only serialize
    two unrelated products, they never let two runs for one product interleave.
    """
    return int.from_bytes(entity_id.bytes[:8], "big", signed=True)


async def acquire_advisory_lock(session: AsyncSession, entity_id: UUID) -> None:
    """
    Take a transaction-scoped exclusive advisory lock for an entity.

    The lock is released by the database on commit or rollback.
    On SQLite (tests, single writer) this is a no-op.
    """
    dialect = session.get_bind().dialect.name
    if dialect != "postgresql":
        return

    await session.execute(
        text("SELECT pg_advisory_xact_lock(:key)"),
        {"key": advisory_lock_key(entity_id)},
    )


def is_retryable_error(error: BaseException) -> bool:
    """Check whether a database error is a serialization failure or deadlock."""
    if not isinstance(error, DBAPIError):
        return False
    orig = getattr(error, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return sqlstate in RETRYABLE_SQLSTATES


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    attempts: Optional[int] = None,
    backoff_seconds: Optional[float] = None,
) -> T:
    """
    Run a transactional unit, retrying it on serialization/deadlock failures.

    `operation` must open and commit its own transaction so that every
    attempt starts from a fresh snapshot. Any other error propagates at once.
    """
    attempts = attempts or settings.TRANSACTION_RETRY_ATTEMPTS
    if backoff_seconds is None:
        backoff_seconds = settings.TRANSACTION_RETRY_BACKOFF_SECONDS

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except DBAPIError as e:
            if not is_retryable_error(e) or attempt == attempts:
                raise
            logger.warning(
                f"Retryable database conflict (attempt {attempt}/{attempts}): {e.orig}"
            )
            await asyncio.sleep(backoff_seconds * attempt)

    raise RuntimeError("run_with_retry exhausted without result")
