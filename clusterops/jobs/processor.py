"""Single-flight poller that drains pending cluster jobs."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Literal

from clusterops.config import Settings
from clusterops.jobs.collaborators import ClusterEventInput, ClusterStatusUpdater, EventRecorder
from clusterops.jobs.dispatch import JobHandlerRegistry
from clusterops.jobs.errors import TerminalJobFailure
from clusterops.jobs.models import JobRecord
from clusterops.storage.jobs_repo import JobsRepository

SchedulerState = Literal["idle", "draining"]


class JobProcessor:
  """Coordinates execution of queued cluster jobs.

  Each tick fetches a batch of pending jobs and runs them one after another.
  Ticks never overlap within a process: a tick that starts while another is
  draining returns immediately. Across processes, a job only runs after a
  successful conditional claim in the job store.
  """

  def __init__(self, *, jobs_repo: JobsRepository, registry: JobHandlerRegistry, clusters: ClusterStatusUpdater, events: EventRecorder, settings: Settings) -> None:
    self._jobs_repo = jobs_repo
    self._registry = registry
    self._clusters = clusters
    self._events = events
    self._settings = settings
    self._logger = logging.getLogger(__name__)
    self._lock = asyncio.Lock()
    self._state: SchedulerState = "idle"
    self._loop_task: asyncio.Task[None] | None = None
    self._tick_tasks: set[asyncio.Task[int]] = set()

  @property
  def state(self) -> SchedulerState:
    return self._state

  @property
  def running(self) -> bool:
    return self._loop_task is not None and not self._loop_task.done()

  async def tick(self) -> int:
    """Drain one batch; returns the number of jobs dispatched, or 0 when skipped."""
    if self._lock.locked():
      self._logger.debug("Job processor tick skipped; previous drain still running.")
      return 0
    async with self._lock:
      self._state = "draining"
      try:
        return await self._drain()
      finally:
        self._state = "idle"

  async def _drain(self) -> int:
    jobs = await self._jobs_repo.find_pending_jobs(self._settings.jobs_batch_size)
    if not jobs:
      return 0
    self._logger.info("Processing %d pending job(s)", len(jobs))
    dispatched = 0
    for job in jobs:
      try:
        if await self.process_job(job):
          dispatched += 1
      except Exception:  # noqa: BLE001
        self._logger.error("Unexpected error while processing job %s", job.id, exc_info=True)
    return dispatched

  async def process_job(self, job: JobRecord) -> bool:
    """Claim, dispatch and settle a single job; False when another worker claimed it first."""
    claimed = await self._jobs_repo.claim_job(job.id)
    if claimed is None:
      self._logger.debug("Job %s was claimed elsewhere; skipping.", job.id)
      return False

    self._logger.info("Dispatching job %s (%s) attempt %d/%d", claimed.id, claimed.type, claimed.attempts, claimed.max_attempts)
    try:
      handler = self._registry.resolve(claimed.type)
      result = await handler.handle(claimed)
    except Exception as exc:  # noqa: BLE001
      message = str(exc) or exc.__class__.__name__
      self._logger.warning("Job %s (%s) failed on attempt %d/%d%s: %s", claimed.id, claimed.type, claimed.attempts, claimed.max_attempts, " (no attempts left)" if claimed.attempts_exhausted else "", message)
      failed = await self._jobs_repo.fail_job(claimed.id, message)
      if failed is None or failed.status == "canceled":
        self._logger.info("Job %s was canceled while running; failure discarded", claimed.id)
      elif failed.status == "failed":
        await self._handle_terminal_failure(failed)
      return True

    completed = await self._jobs_repo.complete_job(claimed.id, result)
    if completed is None or completed.status != "success":
      self._logger.info("Job %s was canceled while running; result discarded", claimed.id)
      return True
    self._logger.info("Job %s (%s) completed", claimed.id, claimed.type)
    return True

  async def _handle_terminal_failure(self, job: JobRecord) -> None:
    """Surface an exhausted job on its cluster: status failed plus an error event."""
    failure = TerminalJobFailure(job.id, job.attempts, job.last_error)
    self._logger.error("%s", failure)
    if not job.target_cluster_id:
      return
    # Status flip and event are independent; one failing must not drop the other.
    try:
      await self._clusters.update_status(job.target_cluster_id, "failed")
    except Exception:  # noqa: BLE001
      self._logger.error("Failed to mark cluster %s failed after job %s", job.target_cluster_id, job.id, exc_info=True)

    try:
      await self._events.create_event(
        ClusterEventInput(
          org_id=await self._resolve_org_id(job),
          project_id=job.target_project_id,
          cluster_id=job.target_cluster_id,
          type="CLUSTER_FAILED",
          severity="error",
          message=f"Cluster operation failed: {job.last_error}",
          metadata={"jobId": job.id, "jobType": job.type, "attempts": job.attempts},
        )
      )
    except Exception:  # noqa: BLE001
      self._logger.error("Failed to record failure event of job %s on cluster %s", job.id, job.target_cluster_id, exc_info=True)

  async def _resolve_org_id(self, job: JobRecord) -> str:
    """Prefer the job's org target, then the cluster record's org; empty when neither is known."""
    if job.target_org_id:
      return job.target_org_id
    try:
      cluster = await self._clusters.get_cluster(str(job.target_cluster_id))
    except Exception:  # noqa: BLE001
      self._logger.warning("Could not load cluster %s to resolve its org", job.target_cluster_id, exc_info=True)
      return ""
    return cluster.org_id if cluster is not None else ""

  def start(self) -> None:
    """Start the background poll loop."""
    if self.running:
      return
    self._loop_task = asyncio.create_task(self._run_loop(), name="clusterops-job-processor")
    self._logger.info("Job processor started (interval=%.1fs, batch=%d)", self._settings.jobs_poll_interval_seconds, self._settings.jobs_batch_size)

  async def stop(self) -> None:
    """Stop the poll loop and wait for an in-flight drain to settle."""
    if self._loop_task is not None:
      self._loop_task.cancel()
      with contextlib.suppress(asyncio.CancelledError):
        await self._loop_task
      self._loop_task = None
    if self._tick_tasks:
      await asyncio.gather(*self._tick_tasks, return_exceptions=True)
    self._logger.info("Job processor stopped")

  async def _run_loop(self) -> None:
    # Ticks are fired on a fixed timer and not awaited, so a slow drain makes later ticks hit the guard.
    while True:
      task = asyncio.create_task(self._safe_tick())
      self._tick_tasks.add(task)
      task.add_done_callback(self._tick_tasks.discard)
      await asyncio.sleep(self._settings.jobs_poll_interval_seconds)

  async def _safe_tick(self) -> int:
    try:
      return await self.tick()
    except Exception:  # noqa: BLE001
      self._logger.error("Job processor tick failed", exc_info=True)
      return 0
