"""SQLAlchemy-backed backup lifecycle transitions."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clusterops.core.database import get_session_factory
from clusterops.jobs.collaborators import BackupLifecycle, BackupStats, ClusterEventInput, EventRecorder, RecordNotFoundError
from clusterops.schema.backups import Backup


class SqlBackupsRepository(BackupLifecycle):
  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None, *, events: EventRecorder | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    self._events = events

  async def start_backup(self, backup_id: str) -> None:
    async with self._session_factory() as session:
      row = await self._require(session, backup_id)
      row.status = "in_progress"
      row.started_at = datetime.now(UTC)
      await session.commit()

  async def complete_backup(self, backup_id: str, stats: BackupStats) -> None:
    async with self._session_factory() as session:
      row = await self._require(session, backup_id)
      row.status = "completed"
      row.completed_at = datetime.now(UTC)
      row.size_bytes = stats.size_bytes
      row.compressed_size_bytes = stats.compressed_size_bytes or stats.size_bytes
      row.storage_path = stats.storage_path
      row.metadata_json = stats.metadata()
      await session.commit()
      org_id, project_id, cluster_id, name = row.org_id, row.project_id, row.cluster_id, row.name

    if self._events is not None:
      await self._events.create_event(
        ClusterEventInput(org_id=org_id, project_id=project_id, cluster_id=cluster_id, type="BACKUP_COMPLETED", severity="info", message=f'Backup "{name}" completed successfully', metadata={"backupId": backup_id, "sizeBytes": stats.size_bytes})
      )

  async def complete_restore(self, backup_id: str) -> None:
    async with self._session_factory() as session:
      row = await self._require(session, backup_id)
      row.status = "completed"
      await session.commit()

  async def _require(self, session: AsyncSession, backup_id: str) -> Backup:
    row = await session.get(Backup, backup_id)
    if row is None:
      raise RecordNotFoundError(f"Backup {backup_id} not found")
    return row
