"""SQLAlchemy-backed repository for cluster-operation jobs."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clusterops.core.database import get_session_factory
from clusterops.jobs.errors import JobValidationError
from clusterops.jobs.models import ACTIVE_STATUSES, DEFAULT_MAX_ATTEMPTS, JOB_STATUSES, JOB_TYPES, JobRecord, JobTargets, JobType
from clusterops.schema.jobs import ClusterJob
from clusterops.storage.jobs_repo import JobsRepository
from clusterops.utils.ids import generate_job_id

logger = logging.getLogger(__name__)


def _now() -> datetime:
  return datetime.now(UTC)


def _aware(value: datetime | None) -> datetime | None:
  # SQLite hands back naive datetimes; every stored value is UTC.
  if value is None or value.tzinfo is not None:
    return value
  return value.replace(tzinfo=UTC)


class SqlJobsRepository(JobsRepository):
  """Persist jobs with SQLAlchemy; every state transition is a single locked read-modify-write."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, job_type: JobType, targets: JobTargets | None = None, payload: dict[str, Any] | None = None, *, max_attempts: int | None = None) -> JobRecord:
    if job_type not in JOB_TYPES:
      raise JobValidationError(f"Unknown job type: {job_type}")
    effective_max_attempts = DEFAULT_MAX_ATTEMPTS if max_attempts is None else max_attempts
    if effective_max_attempts < 1:
      raise JobValidationError("maxAttempts must be at least 1")

    targets = targets or JobTargets()
    now = _now()
    row = ClusterJob(
      id=generate_job_id(),
      type=job_type,
      status="pending",
      target_cluster_id=targets.cluster_id,
      target_project_id=targets.project_id,
      target_org_id=targets.org_id,
      payload=dict(payload or {}),
      result=None,
      last_error=None,
      attempts=0,
      max_attempts=effective_max_attempts,
      created_at=now,
      updated_at=now,
    )
    async with self._session_factory() as session:
      session.add(row)
      await session.commit()
    logger.info("Created job %s type=%s cluster=%s", row.id, job_type, targets.cluster_id)
    return self._model_to_record(row)

  async def find_pending_jobs(self, limit: int = 10) -> list[JobRecord]:
    async with self._session_factory() as session:
      stmt = select(ClusterJob).where(ClusterJob.status == "pending").order_by(ClusterJob.created_at.asc(), ClusterJob.id.asc()).limit(limit)
      result = await session.execute(stmt)
      return [self._model_to_record(row) for row in result.scalars().all()]

  async def find_by_id(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(ClusterJob, job_id)
      return self._model_to_record(row) if row is not None else None

  async def find_by_cluster_id(self, cluster_id: str) -> list[JobRecord]:
    async with self._session_factory() as session:
      stmt = select(ClusterJob).where(ClusterJob.target_cluster_id == cluster_id).order_by(ClusterJob.created_at.desc())
      result = await session.execute(stmt)
      return [self._model_to_record(row) for row in result.scalars().all()]

  async def find_active_job_for_cluster(self, cluster_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      stmt = select(ClusterJob).where(ClusterJob.target_cluster_id == cluster_id, ClusterJob.status.in_(ACTIVE_STATUSES)).order_by(ClusterJob.created_at.asc()).limit(1)
      row = (await session.execute(stmt)).scalars().first()
      return self._model_to_record(row) if row is not None else None

  async def start_job(self, job_id: str) -> JobRecord | None:
    def _apply(row: ClusterJob, now: datetime) -> bool:
      # Terminal or exhausted jobs are never restarted.
      if row.status not in ACTIVE_STATUSES or row.attempts >= row.max_attempts:
        return False
      if row.status != "in_progress":
        row.started_at = now
      row.status = "in_progress"
      row.attempts += 1
      return True

    return await self._mutate(job_id, _apply)

  async def claim_job(self, job_id: str) -> JobRecord | None:
    now = _now()
    async with self._session_factory() as session:
      # Conditional update: only one worker can move a pending row to in_progress.
      stmt = (
        update(ClusterJob)
        .where(ClusterJob.id == job_id, ClusterJob.status == "pending", ClusterJob.attempts < ClusterJob.max_attempts)
        .values(status="in_progress", started_at=now, attempts=ClusterJob.attempts + 1, updated_at=now)
        .execution_options(synchronize_session=False)
      )
      result = await session.execute(stmt)
      await session.commit()
      if result.rowcount != 1:
        logger.debug("Job %s was not claimable", job_id)
        return None
      row = await session.get(ClusterJob, job_id, populate_existing=True)
      return self._model_to_record(row) if row is not None else None

  async def complete_job(self, job_id: str, result: dict[str, Any] | None = None) -> JobRecord | None:
    def _apply(row: ClusterJob, now: datetime) -> bool:
      # A job canceled while its handler ran stays canceled.
      if row.status != "in_progress":
        return False
      row.status = "success"
      row.result = dict(result) if result is not None else None
      row.completed_at = now
      return True

    return await self._mutate(job_id, _apply)

  async def fail_job(self, job_id: str, error: str, should_retry: bool = True) -> JobRecord | None:
    def _apply(row: ClusterJob, now: datetime) -> bool:
      if row.status != "in_progress":
        return False
      row.last_error = error
      if should_retry and row.attempts < row.max_attempts:
        row.status = "pending"
        row.completed_at = None
      else:
        row.status = "failed"
        row.completed_at = now
      return True

    return await self._mutate(job_id, _apply)

  async def cancel_job(self, job_id: str) -> JobRecord | None:
    def _apply(row: ClusterJob, now: datetime) -> bool:
      if row.status not in ACTIVE_STATUSES:
        return False
      row.status = "canceled"
      row.completed_at = now
      return True

    return await self._mutate(job_id, _apply)

  async def retry_job(self, job_id: str) -> JobRecord | None:
    def _apply(row: ClusterJob, now: datetime) -> bool:
      if row.status not in {"failed", "canceled"}:
        return False
      row.status = "pending"
      row.last_error = None
      row.attempts = 0
      row.completed_at = None
      return True

    return await self._mutate(job_id, _apply)

  async def get_job_stats(self) -> dict[str, int]:
    stats = dict.fromkeys(JOB_STATUSES, 0)
    async with self._session_factory() as session:
      result = await session.execute(select(ClusterJob.status, func.count()).group_by(ClusterJob.status))
      for status, count in result.all():
        stats[status] = int(count)
    return stats

  async def _mutate(self, job_id: str, apply: Callable[[ClusterJob, datetime], bool]) -> JobRecord | None:
    """Lock the row, apply a transition and commit; unchanged rows are returned as-is."""
    async with self._session_factory() as session:
      async with session.begin():
        stmt = select(ClusterJob).where(ClusterJob.id == job_id).with_for_update()
        row = (await session.execute(stmt)).scalars().first()
        if row is None:
          return None
        now = _now()
        if apply(row, now):
          row.updated_at = now
      return self._model_to_record(row)

  def _model_to_record(self, row: ClusterJob) -> JobRecord:
    return JobRecord(
      id=row.id,
      type=row.type,  # type: ignore[arg-type]
      status=row.status,  # type: ignore[arg-type]
      created_at=_aware(row.created_at),
      updated_at=_aware(row.updated_at),
      target_cluster_id=row.target_cluster_id,
      target_project_id=row.target_project_id,
      target_org_id=row.target_org_id,
      payload=dict(row.payload or {}),
      result=dict(row.result) if row.result is not None else None,
      last_error=row.last_error,
      attempts=row.attempts,
      max_attempts=row.max_attempts,
      started_at=_aware(row.started_at),
      completed_at=_aware(row.completed_at),
    )
