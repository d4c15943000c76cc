"""Read-only user and project lookups for notification content."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clusterops.core.database import get_session_factory
from clusterops.jobs.collaborators import DirectoryLookup, ProjectInfo, UserContact
from clusterops.schema.directory import DirectoryProject, DirectoryUser


class SqlDirectoryRepository(DirectoryLookup):
  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()

  async def find_user(self, user_id: str) -> UserContact | None:
    async with self._session_factory() as session:
      row = await session.get(DirectoryUser, user_id)
      return UserContact(id=row.id, email=row.email, name=row.name) if row is not None else None

  async def find_project(self, project_id: str) -> ProjectInfo | None:
    async with self._session_factory() as session:
      row = await session.get(DirectoryProject, project_id)
      return ProjectInfo(id=row.id, name=row.name) if row is not None else None
