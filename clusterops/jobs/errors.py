"""Errors raised by the job engine."""

from __future__ import annotations


class JobError(Exception):
  """Base class for job engine failures."""


class JobValidationError(JobError):
  """Raised when a job is malformed: unknown type, missing targets or an invalid payload."""


class TerminalJobFailure(JobError):
  """Raised when a job has exhausted its retry budget."""

  def __init__(self, job_id: str, attempts: int, last_error: str | None) -> None:
    super().__init__(f"Job {job_id} failed after {attempts} attempts: {last_error}")
    self.job_id = job_id
    self.attempts = attempts
    self.last_error = last_error


class ClusterBusyError(JobError):
  """Raised when an exclusive job is requested while another job is active for the same cluster."""

  def __init__(self, cluster_id: str, active_job_id: str) -> None:
    super().__init__(f"Cluster {cluster_id} already has an active job {active_job_id}")
    self.cluster_id = cluster_id
    self.active_job_id = active_job_id
