"""Shared test fixtures."""

import os

# Configure before the application reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "test-webhook-secret")
os.environ["ENVIRONMENT"] = "development"
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("SENDGRID_API_KEY", None)

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import sunsano.models  # noqa: E402,F401
from sunsano.config import settings  # noqa: E402
from sunsano.core.idempotency import reset_idempotency_store  # noqa: E402
from sunsano.database import Base, get_db  # noqa: E402
from sunsano.main import app  # noqa: E402
from sunsano.services.product_service import product_service  # noqa: E402


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Session on a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession) -> AsyncSession:
    await product_service.seed_catalogue(db_session)
    await db_session.commit()
    return db_session


@pytest_asyncio.fixture
async def client(seeded_db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """API client sharing the test session with the application."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield seeded_db
            await seeded_db.commit()
        except Exception:
            await seeded_db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clear_idempotency():
    reset_idempotency_store()
    yield
    reset_idempotency_store()


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Key": settings.admin_api_key}
