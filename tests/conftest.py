import os
import tempfile
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Infrastructure defaults so the settings object can be built without a .env
os.environ.setdefault(
    "DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.gettempdir()}/barshift_app.db"
)
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
# Shift times and as_of instants in the tests are written in UTC
os.environ["VENUE_TIMEZONE"] = "UTC"

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from barshift.config import settings  # noqa: E402
from barshift.core.security import create_access_token  # noqa: E402
from barshift.database import build_engine, get_db  # noqa: E402
from barshift.dependencies import get_as_of, get_event_publisher  # noqa: E402
from barshift.main import app  # noqa: E402
from barshift.models import metadata  # noqa: E402
from factories import AS_OF, Factory, RecordingPublisher  # noqa: E402

# Test database URL - MUST be different from the application database
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{tempfile.gettempdir()}/barshift_test.db",
)

if settings.database_url == TEST_DATABASE_URL:
    raise RuntimeError(
        "TEST_DATABASE_URL matches DATABASE_URL; tests drop every table they touch"
    )

# NullPool keeps connections from leaking across event loops
test_engine = build_engine(TEST_DATABASE_URL, poolclass=NullPool, echo=False)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on freshly created tables."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def events() -> RecordingPublisher:
    """In-memory domain event publisher."""
    return RecordingPublisher()


@pytest.fixture
def factory(db_session: AsyncSession) -> Factory:
    """Row factory bound to the test session."""
    return Factory(db_session)


@pytest.fixture
def as_of() -> datetime:
    """Fixed evaluation instant."""
    return AS_OF


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    events: RecordingPublisher,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_publisher] = lambda: events
    app.dependency_overrides[get_as_of] = lambda: AS_OF

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers_for() -> Callable[[dict[str, Any]], dict[str, str]]:
    """Build bearer headers for a staff member."""

    def _headers(staff: dict[str, Any]) -> dict[str, str]:
        token = create_access_token(
            staff["id"],
            expires_delta=timedelta(minutes=30),
            email=staff["email"],
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
