from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from clusterops.config import DEFAULT_SQLITE_DSN, get_database_settings


class Base(DeclarativeBase):
  pass


engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def _database_url() -> str:
  """Build the SQLAlchemy database URL while keeping settings evaluation minimal."""
  settings = get_database_settings()
  database_url = settings.pg_dsn or DEFAULT_SQLITE_DSN
  if database_url.startswith("postgresql://"):
    database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

  return database_url


DATABASE_URL = _database_url()


def get_db_engine() -> AsyncEngine:
  global engine
  settings = get_database_settings()
  if engine is None:
    database_url = _database_url()
    connect_args = {"timeout": settings.pg_connect_timeout} if database_url.startswith("postgresql+asyncpg://") else {}
    engine = create_async_engine(database_url, echo=settings.debug, connect_args=connect_args)
  return engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
  global SessionLocal
  if SessionLocal is None:
    SessionLocal = async_sessionmaker(bind=get_db_engine(), expire_on_commit=False, class_=AsyncSession)
  return SessionLocal


async def create_schema() -> None:
  """Create all mapped tables on the configured engine (development databases only)."""
  import clusterops.schema  # noqa: F401

  async with get_db_engine().begin() as connection:
    await connection.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
  global engine, SessionLocal
  if engine is not None:
    await engine.dispose()
  engine = None
  SessionLocal = None

