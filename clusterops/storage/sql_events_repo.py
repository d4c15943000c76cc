"""SQLAlchemy-backed cluster timeline events."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clusterops.core.database import get_session_factory
from clusterops.jobs.collaborators import ClusterEventInput, EventHistory, EventRecorder
from clusterops.schema.events import ClusterEvent
from clusterops.utils.ids import generate_event_id


class SqlEventsRepository(EventRecorder, EventHistory):
  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()

  async def create_event(self, event: ClusterEventInput) -> None:
    async with self._session_factory() as session:
      session.add(
        ClusterEvent(
          id=generate_event_id(),
          org_id=event.org_id,
          project_id=event.project_id,
          cluster_id=event.cluster_id,
          type=event.type,
          severity=event.severity,
          message=event.message,
          metadata_json=event.metadata,
          created_at=datetime.now(UTC),
        )
      )
      await session.commit()

  async def list_for_cluster(self, cluster_id: str, limit: int = 50) -> list[ClusterEventInput]:
    """Return a cluster's most recent events, newest first."""
    async with self._session_factory() as session:
      stmt = select(ClusterEvent).where(ClusterEvent.cluster_id == cluster_id).order_by(ClusterEvent.created_at.desc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [ClusterEventInput(org_id=row.org_id, project_id=row.project_id, cluster_id=row.cluster_id, type=row.type, severity=row.severity, message=row.message, metadata=row.metadata_json) for row in rows]  # type: ignore[arg-type]
