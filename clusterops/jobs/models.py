"""Domain models for asynchronous cluster-operation jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, get_args

JobType = Literal["CREATE_CLUSTER", "RESIZE_CLUSTER", "DELETE_CLUSTER", "PAUSE_CLUSTER", "RESUME_CLUSTER", "BACKUP_CLUSTER", "RESTORE_CLUSTER", "SYNC_STATUS"]
JobStatus = Literal["pending", "in_progress", "success", "failed", "canceled"]

JOB_TYPES: tuple[str, ...] = get_args(JobType)
JOB_STATUSES: tuple[str, ...] = get_args(JobStatus)
ACTIVE_STATUSES = frozenset({"pending", "in_progress"})
DEFAULT_MAX_ATTEMPTS = 3


@dataclass(frozen=True)
class JobTargets:
  """Optional foreign references a job acts upon."""

  cluster_id: str | None = None
  project_id: str | None = None
  org_id: str | None = None


@dataclass
class JobRecord:
  """Represents a durable cluster-operation job."""

  id: str
  type: JobType
  status: JobStatus
  created_at: datetime
  updated_at: datetime
  target_cluster_id: str | None = None
  target_project_id: str | None = None
  target_org_id: str | None = None
  payload: dict[str, Any] = field(default_factory=dict)
  result: dict[str, Any] | None = None
  last_error: str | None = None
  attempts: int = 0
  max_attempts: int = DEFAULT_MAX_ATTEMPTS
  started_at: datetime | None = None
  completed_at: datetime | None = None

  @property
  def attempts_exhausted(self) -> bool:
    return self.attempts >= self.max_attempts
