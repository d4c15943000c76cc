"""SQLAlchemy-backed cluster state updates used by the job handlers."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clusterops.core.database import get_session_factory
from clusterops.jobs.collaborators import ClusterRecord, ClusterStatus, ClusterStatusUpdater, RecordNotFoundError
from clusterops.orchestration.manager import ConnectionInfo
from clusterops.schema.backups import Backup
from clusterops.schema.clusters import Cluster

logger = logging.getLogger(__name__)


class SqlClustersRepository(ClusterStatusUpdater):
  """Persist cluster status, plan and connection details."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()

  async def get_cluster(self, cluster_id: str) -> ClusterRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Cluster, cluster_id)
      if row is None:
        return None
      return ClusterRecord(id=row.id, org_id=row.org_id, project_id=row.project_id, name=row.name, plan=row.plan, status=row.status, mongo_version=row.mongo_version, created_by=row.created_by)

  async def update_status(self, cluster_id: str, status: ClusterStatus, connection: ConnectionInfo | None = None) -> None:
    async with self._session_factory() as session:
      row = await self._require(session, cluster_id)
      row.status = status
      if connection is not None:
        row.connection_host = connection.host
        row.connection_port = connection.port
        if connection.replica_set:
          row.replica_set_name = connection.replica_set
        if connection.srv:
          row.srv_host = connection.srv
        if connection.external_host:
          row.external_host = connection.external_host
        if connection.external_port:
          row.external_port = connection.external_port
      row.updated_at = datetime.now(UTC)
      await session.commit()

  async def update_plan(self, cluster_id: str, plan: str) -> None:
    async with self._session_factory() as session:
      row = await self._require(session, cluster_id)
      row.plan = plan
      row.updated_at = datetime.now(UTC)
      await session.commit()

  async def mark_as_paused(self, cluster_id: str) -> None:
    async with self._session_factory() as session:
      row = await self._require(session, cluster_id)
      now = datetime.now(UTC)
      row.status = "paused"
      row.paused_at = now
      row.updated_at = now
      await session.commit()

  async def mark_as_resumed(self, cluster_id: str) -> None:
    async with self._session_factory() as session:
      row = await self._require(session, cluster_id)
      row.status = "ready"
      row.paused_at = None
      row.updated_at = datetime.now(UTC)
      await session.commit()

  async def hard_delete(self, cluster_id: str) -> None:
    async with self._session_factory() as session:
      row = await session.get(Cluster, cluster_id)
      if row is None:
        return
      # Timeline events are kept for audit; backups go with the cluster.
      result = await session.execute(delete(Backup).where(Backup.cluster_id == cluster_id))
      await session.delete(row)
      await session.commit()
    logger.info("Hard-deleted cluster %s and %s backups", cluster_id, result.rowcount)

  async def _require(self, session: AsyncSession, cluster_id: str) -> Cluster:
    row = await session.get(Cluster, cluster_id)
    if row is None:
      raise RecordNotFoundError(f"Cluster {cluster_id} not found")
    return row
