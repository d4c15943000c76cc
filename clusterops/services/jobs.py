"""Caller-side job operations: enqueue with guards, inspect, cancel and retry."""

from __future__ import annotations

import logging
from typing import Any

from clusterops.jobs.errors import ClusterBusyError, JobValidationError
from clusterops.jobs.models import JOB_TYPES, JobRecord, JobTargets
from clusterops.orchestration.errors import UnsupportedResizeError
from clusterops.orchestration.profiles import is_known_plan, is_operator_managed
from clusterops.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)


class JobService:
  def __init__(self, *, jobs_repo: JobsRepository, default_max_attempts: int) -> None:
    self._jobs_repo = jobs_repo
    self._default_max_attempts = default_max_attempts

  async def enqueue(self, job_type: str, targets: JobTargets | None = None, payload: dict[str, Any] | None = None, *, max_attempts: int | None = None, exclusive: bool = False) -> JobRecord:
    """Create a pending job after validating its type and resize compatibility."""
    if job_type not in JOB_TYPES:
      raise JobValidationError(f"Unsupported job type: {job_type}")
    payload = dict(payload or {})
    if job_type == "RESIZE_CLUSTER":
      _check_resize(payload)

    if exclusive:
      if targets is None or not targets.cluster_id:
        raise JobValidationError("Exclusive jobs require a target cluster")
      active = await self._jobs_repo.find_active_job_for_cluster(targets.cluster_id)
      if active is not None:
        raise ClusterBusyError(targets.cluster_id, active.id)

    job = await self._jobs_repo.create_job(job_type, targets, payload, max_attempts=max_attempts or self._default_max_attempts)  # type: ignore[arg-type]
    logger.info("Enqueued job %s (%s) cluster=%s", job.id, job.type, job.target_cluster_id)
    return job

  async def get(self, job_id: str) -> JobRecord | None:
    return await self._jobs_repo.find_by_id(job_id)

  async def list_for_cluster(self, cluster_id: str) -> list[JobRecord]:
    return await self._jobs_repo.find_by_cluster_id(cluster_id)

  async def cancel(self, job_id: str) -> JobRecord | None:
    job = await self._jobs_repo.cancel_job(job_id)
    if job is not None:
      logger.info("Cancel requested for job %s; status=%s", job_id, job.status)
    return job

  async def retry(self, job_id: str) -> JobRecord | None:
    job = await self._jobs_repo.retry_job(job_id)
    if job is not None:
      logger.info("Retry requested for job %s; status=%s", job_id, job.status)
    return job

  async def stats(self) -> dict[str, int]:
    return await self._jobs_repo.get_job_stats()


def _check_resize(payload: dict[str, Any]) -> None:
  new_plan = payload.get("newPlan") or payload.get("new_plan")
  old_plan = payload.get("oldPlan") or payload.get("old_plan")
  if not new_plan:
    raise JobValidationError("RESIZE_CLUSTER requires newPlan")
  if not is_known_plan(str(new_plan)):
    raise JobValidationError(f"Unknown plan: {new_plan}")
  if old_plan and is_operator_managed(str(old_plan)) != is_operator_managed(str(new_plan)):
    raise UnsupportedResizeError(f"Cannot resize from {old_plan} to {new_plan}: the plans use different deployment strategies")
