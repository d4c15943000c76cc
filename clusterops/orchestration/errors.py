"""Error taxonomy for orchestration-platform calls."""

from __future__ import annotations

import asyncio

import aiohttp
from kubernetes_asyncio.client.exceptions import ApiException


class OrchestrationError(Exception):
  """Base class for orchestration failures."""

  def __init__(self, message: str, *, status: int | None = None) -> None:
    super().__init__(message)
    self.status = status


class TransientOrchestrationError(OrchestrationError):
  """Network failure, timeout or 5xx from the orchestration API; retryable."""


class ResourceNotFoundError(OrchestrationError):
  """The orchestration API answered 404."""


class ResourceConflictError(OrchestrationError):
  """The orchestration API answered 409."""


class UnsupportedResizeError(OrchestrationError):
  """A resize would cross the operator-managed and simple deployment strategies."""


class UnsupportedOperationError(OrchestrationError):
  """The operation is not available for the cluster's deployment strategy."""


def translate_api_error(exc: BaseException, action: str) -> OrchestrationError:
  """Map a kubernetes client or transport error onto the orchestration taxonomy."""
  if isinstance(exc, OrchestrationError):
    return exc
  if isinstance(exc, ApiException):
    status = exc.status or 0
    message = f"{action} failed: {status} {exc.reason}"
    if status == 404:
      return ResourceNotFoundError(message, status=status)
    if status == 409:
      return ResourceConflictError(message, status=status)
    if status >= 500 or status == 429:
      return TransientOrchestrationError(message, status=status)
    return OrchestrationError(message, status=status)
  if isinstance(exc, aiohttp.ClientError | asyncio.TimeoutError | ConnectionError):
    return TransientOrchestrationError(f"{action} failed: {exc}")
  return OrchestrationError(f"{action} failed: {exc}")
