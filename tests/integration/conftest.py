"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.

Pre-condition: PostgreSQL and Redis running, `alembic upgrade head` applied.
Without them every integration test is skipped.
"""

import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from config.settings import settings
from src.hm_common.redis_client import get_redis
from src.hm_gateway.auth.jwt_handler import create_access_token
from src.main import app


def make_session() -> AsyncSession:
    """Create a fresh session with NullPool to avoid event-loop binding."""
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return factory()


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def services_up() -> None:
    try:
        async with make_session() as db:
            await db.execute(text("SELECT 1 FROM wallets LIMIT 1"))
        await (await get_redis()).ping()
    except (OSError, SQLAlchemyError, RedisError) as exc:
        pytest.skip(f"PostgreSQL/Redis not available: {exc}")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client(services_up: None) -> AsyncGenerator[AsyncClient, None]:
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def patient(services_up: None) -> dict[str, str]:
    """A fresh payer with a 5000 DZD (500000 centimes) wallet and a Bearer header."""
    user_id = str(uuid.uuid4())
    async with make_session() as db:
        await db.execute(
            text("INSERT INTO profiles (id, full_name, blood_type) VALUES (:id, :name, 'O+')"),
            {"id": user_id, "name": "Integration Patient"},
        )
        await db.execute(
            text("INSERT INTO wallets (user_id, balance) VALUES (:id, 500000)"),
            {"id": user_id},
        )
        await db.commit()
    token = create_access_token(user_id)
    return {"id": user_id, "Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(loop_scope="session")
async def provider(services_up: None) -> dict[str, str]:
    """An auto-confirming provider open every day 08:00-20:00."""
    auth_user_id = str(uuid.uuid4())
    async with make_session() as db:
        result = await db.execute(
            text("""
                INSERT INTO professionals (auth_user_id, working_hours, auto_confirm_appointments)
                VALUES (:auth_user_id, CAST(:hours AS JSONB), TRUE)
                RETURNING id
            """),
            {
                "auth_user_id": auth_user_id,
                "hours": '{"weekdays": {"isOpen": true, "open": "08:00", "close": "20:00"}}',
            },
        )
        provider_id = str(result.scalar_one())
        await db.commit()
    token = create_access_token(auth_user_id)
    return {"id": provider_id, "Authorization": f"Bearer {token}"}
