"""Shared fixtures: test environment, in-memory database and settings."""

from __future__ import annotations

import os
import tempfile
from dataclasses import replace

# Ensure required settings are available before importing the app.
os.environ.setdefault("CLUSTEROPS_ENV", "test")
os.environ.setdefault("CLUSTEROPS_ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("CLUSTEROPS_LOG_DIR", tempfile.mkdtemp(prefix="clusterops-logs-"))
os.environ["CLUSTEROPS_K8S_SIMULATE"] = "1"
os.environ["CLUSTEROPS_JOBS_AUTO_PROCESS"] = "0"
os.environ["CLUSTEROPS_AUTO_CREATE_SCHEMA"] = "0"
os.environ["CLUSTEROPS_SIMULATED_DELAY_SCALE"] = "0"
os.environ["CLUSTEROPS_INTERNAL_API_TOKEN"] = "test-internal-token"
os.environ.pop("CLUSTEROPS_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import clusterops.schema  # noqa: E402, F401
from clusterops.api.deps import get_container  # noqa: E402
from clusterops.config import Settings, get_settings  # noqa: E402
from clusterops.core.container import build_container  # noqa: E402
from clusterops.core.database import Base  # noqa: E402
from clusterops.main import app  # noqa: E402
from clusterops.orchestration.simulated import SimulatedResourceManager  # noqa: E402

INTERNAL_TOKEN = "test-internal-token"


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def settings() -> Settings:
  return replace(get_settings(), simulated_delay_scale=0.0, jobs_batch_size=5, jobs_poll_interval_seconds=0.01, k8s_namespace_prefix="clusterops-")


@pytest.fixture
async def session_factory(anyio_backend) -> async_sessionmaker[AsyncSession]:
  """A fresh in-memory SQLite database per test."""
  engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
  async with engine.begin() as connection:
    await connection.run_sync(Base.metadata.create_all)
  yield async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
  await engine.dispose()


@pytest.fixture
def container(settings, session_factory):
  return build_container(settings, SimulatedResourceManager(settings), session_factory=session_factory, notifier=AsyncMock())


@pytest.fixture
async def async_client(container):
  app.dependency_overrides[get_container] = lambda: container
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test", headers={"Authorization": f"Bearer {INTERNAL_TOKEN}"}) as client:
    yield client
  app.dependency_overrides.clear()
