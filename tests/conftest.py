"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ["DOD_JWT_SECRET"] = "test-secret-for-double-or-die-suite"
os.environ["DOD_JWT_ALGORITHM"] = "HS256"
os.environ["DOD_REDIS_URL"] = ""
os.environ["DOD_LOG_FORMAT"] = "console"

from dod.auth.jwt import create_access_token, reset_keys  # noqa: E402
from dod.config import get_settings  # noqa: E402
from dod.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from dod.db.base import Base  # noqa: E402
from dod.db.models import LeaderboardEntry, Run, Season  # noqa: E402
from dod.main import create_app  # noqa: E402


@pytest.fixture(autouse=True)
def _test_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point every test at its own SQLite file."""
    monkeypatch.setenv("DOD_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'dod.db'}")
    get_settings.cache_clear()
    reset_keys()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(_test_settings: None) -> AsyncGenerator[None, None]:
    """Initialise the engine and create the schema."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for seeding and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app. Redis is not configured."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest_asyncio.fixture
async def active_season(db_session: AsyncSession) -> Season:
    """A season that started yesterday and ends in 30 days."""
    now = datetime.now(timezone.utc)
    season = Season(
        name="Season 1",
        starts_at=now - timedelta(days=1),
        ends_at=now + timedelta(days=30),
        is_active=True,
    )
    db_session.add(season)
    await db_session.commit()
    return season


def run_payload(run_token: str, doubles: int, duration_ms: int | None = None) -> dict:
    """A submission body that passes every plausibility check."""
    return {
        "run_token": run_token,
        "final_score": 2**doubles,
        "doubles": doubles,
        "duration_ms": duration_ms if duration_ms is not None else 500 + doubles * 200,
        "digest": '{"v":1,"actions":[]}',
    }


async def start_run(client: AsyncClient, user_id: str) -> str:
    response = await client.post("/api/v1/runs/start", headers=auth_headers(user_id))
    assert response.status_code == 200, response.text
    return response.json()["run_token"]


async def seed_entry(
    db: AsyncSession,
    season_id: int,
    user_id: str,
    score: int,
    updated_at: datetime,
) -> None:
    """Insert a run and the board row pointing at it."""
    run = Run(
        user_id=user_id,
        season_id=season_id,
        score=score,
        doubles=0,
        duration_ms=1000,
        digest="{}",
        is_valid=True,
        created_at=updated_at,
    )
    db.add(run)
    await db.flush()
    db.add(
        LeaderboardEntry(
            season_id=season_id,
            user_id=user_id,
            best_score=score,
            best_run_id=run.id,
            updated_at=updated_at,
        )
    )
    await db.commit()
