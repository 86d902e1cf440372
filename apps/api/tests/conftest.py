from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from devboard.deps import get_db, get_issue_tracker, get_notifier, get_webhook_secret
from devboard.main import app
from devboard.metrics import runtime_metrics
from devboard.models import Base
from support import WEBHOOK_SECRET, FakeIssueTracker, RecordingNotifier


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
  runtime_metrics.reset()
  yield
  runtime_metrics.reset()


@pytest.fixture
async def session_factory():
  engine = create_async_engine(
    "sqlite+aiosqlite://",
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
  )
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.create_all)
  yield async_sessionmaker(engine, expire_on_commit=False)
  await engine.dispose()


@pytest.fixture
async def db(session_factory):
  async with session_factory() as session:
    yield session


@pytest.fixture
def tracker() -> FakeIssueTracker:
  return FakeIssueTracker()


@pytest.fixture
def notifier() -> RecordingNotifier:
  return RecordingNotifier()


@pytest.fixture
async def client(session_factory, tracker, notifier) -> AsyncClient:
  async def _db():
    async with session_factory() as session:
      yield session

  app.dependency_overrides[get_db] = _db
  app.dependency_overrides[get_issue_tracker] = lambda: tracker
  app.dependency_overrides[get_notifier] = lambda: notifier
  app.dependency_overrides[get_webhook_secret] = lambda: WEBHOOK_SECRET
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c
  app.dependency_overrides.clear()
