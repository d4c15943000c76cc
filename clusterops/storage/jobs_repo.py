"""Storage interfaces for cluster-operation jobs."""

from __future__ import annotations

from typing import Any, Protocol

from clusterops.jobs.models import JobRecord, JobTargets, JobType


class JobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, job_type: JobType, targets: JobTargets | None = None, payload: dict[str, Any] | None = None, *, max_attempts: int | None = None) -> JobRecord:
    """Persist a new pending job."""

  async def find_pending_jobs(self, limit: int = 10) -> list[JobRecord]:
    """Return pending jobs in creation order."""

  async def find_by_id(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier."""

  async def find_by_cluster_id(self, cluster_id: str) -> list[JobRecord]:
    """Return all jobs targeting a cluster, newest first."""

  async def find_active_job_for_cluster(self, cluster_id: str) -> JobRecord | None:
    """Return the oldest pending or in-progress job targeting a cluster."""

  async def start_job(self, job_id: str) -> JobRecord | None:
    """Mark a job in progress and count the attempt."""

  async def claim_job(self, job_id: str) -> JobRecord | None:
    """Start a job only if it is still pending; None when another worker won."""

  async def complete_job(self, job_id: str, result: dict[str, Any] | None = None) -> JobRecord | None:
    """Mark an in-progress job successful; any other status is returned unchanged."""

  async def fail_job(self, job_id: str, error: str, should_retry: bool = True) -> JobRecord | None:
    """Record a failure on an in-progress job and either requeue it or fail it terminally."""

  async def cancel_job(self, job_id: str) -> JobRecord | None:
    """Cancel a pending or in-progress job."""

  async def retry_job(self, job_id: str) -> JobRecord | None:
    """Requeue a failed or canceled job."""

  async def get_job_stats(self) -> dict[str, int]:
    """Return job counts keyed by every known status."""
