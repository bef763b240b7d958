from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import Executable, Result
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


@asynccontextmanager
async def committed_step(db: AsyncSession) -> AsyncIterator[None]:
    """Run one saga step as its own transaction.

    Commits on success; rolls back and re-raises on any failure, so a failed
    step leaves nothing behind and the session is usable for compensation.
    """
    try:
        yield
        await db.commit()
    except Exception:
        await db.rollback()
        raise


@retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(settings.READ_RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=0.1, max=1),
    reraise=True,
)
async def execute_read(
    db: AsyncSession, statement: Executable, params: dict[str, Any] | None = None
) -> Result[Any]:
    """Execute an idempotent SELECT with bounded retries on transient errors.

    Never use for mutating statements: a retried debit is a double charge.
    """
    try:
        return await db.execute(statement, params or {})
    except OperationalError:
        await db.rollback()
        raise
