"""Job type to handler dispatch table."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from clusterops.jobs.errors import JobValidationError
from clusterops.jobs.models import JOB_TYPES, JobRecord


class JobHandler(Protocol):
  """Handler contract for one job type."""

  async def handle(self, job: JobRecord) -> dict[str, Any]:
    """Run the job and return its result map; raise to fail it."""


class JobHandlerRegistry:
  """Registry mapping every job type to exactly one handler.

  Construction fails when a known job type has no handler or a handler is
  registered for an unknown type, so adding a tag without a handler is caught
  as soon as the processor is built.
  """

  def __init__(self, handlers: Mapping[str, JobHandler]) -> None:
    missing = sorted(set(JOB_TYPES) - set(handlers))
    if missing:
      raise ValueError(f"No handler registered for job types: {', '.join(missing)}")
    unknown = sorted(set(handlers) - set(JOB_TYPES))
    if unknown:
      raise ValueError(f"Handlers registered for unknown job types: {', '.join(unknown)}")
    self._handlers = dict(handlers)

  def resolve(self, job_type: str) -> JobHandler:
    """Resolve the handler for a job type."""
    handler = self._handlers.get(job_type)
    if handler is None:
      raise JobValidationError(f"Unsupported job type: {job_type}")
    return handler

  def __contains__(self, job_type: object) -> bool:
    return job_type in self._handlers
