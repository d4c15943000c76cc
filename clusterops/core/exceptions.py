import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from clusterops.jobs.errors import ClusterBusyError, JobValidationError
from clusterops.orchestration.errors import OrchestrationError, ResourceConflictError, ResourceNotFoundError, TransientOrchestrationError, UnsupportedOperationError, UnsupportedResizeError


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  # Serialize exception instances explicitly to avoid leaking non-serializable objects.
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Build a safe error payload that avoids leaking internal details to clients."""
  payload: dict[str, Any] = {"detail": detail}
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx

    sanitized.append(_coerce_json_safe(scrubbed))

  return sanitized


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  logger = logging.getLogger("uvicorn.error")
  request_id = _request_id(request)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors for debugging without leaking payloads."""
  request_id = _request_id(request)
  sanitized_errors = _sanitize_validation_errors(list(exc.errors()))
  logger = logging.getLogger("uvicorn.error")
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle FastAPI HTTPExceptions while avoiding leaking internal diagnostics."""
  request_id = _request_id(request)
  if exc.status_code >= 500:
    logger = logging.getLogger("uvicorn.error")
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail, exc_info=True)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=exc.headers)


async def job_exception_handler(request: Request, exc: JobValidationError | ClusterBusyError) -> JSONResponse:
  """Map job engine errors raised by callers to client-correctable responses."""
  request_id = _request_id(request)
  status_code = status.HTTP_409_CONFLICT if isinstance(exc, ClusterBusyError) else status.HTTP_422_UNPROCESSABLE_ENTITY
  logging.getLogger("uvicorn.error").warning("Job request rejected request_id=%s path=%s status_code=%s error=%s", request_id, request.url.path, status_code, exc)
  return JSONResponse(status_code=status_code, content=_error_payload(str(exc), request_id=request_id))


def _orchestration_status(exc: OrchestrationError) -> int:
  if isinstance(exc, UnsupportedResizeError | UnsupportedOperationError):
    return status.HTTP_422_UNPROCESSABLE_ENTITY
  if isinstance(exc, ResourceNotFoundError):
    return status.HTTP_404_NOT_FOUND
  if isinstance(exc, ResourceConflictError):
    return status.HTTP_409_CONFLICT
  if isinstance(exc, TransientOrchestrationError):
    return status.HTTP_503_SERVICE_UNAVAILABLE
  return status.HTTP_502_BAD_GATEWAY


async def orchestration_exception_handler(request: Request, exc: OrchestrationError) -> JSONResponse:
  """Return a structured failure response for orchestration errors."""
  logger = logging.getLogger("uvicorn.error")
  request_id = _request_id(request)
  status_code = _orchestration_status(exc)
  if status_code >= 500:
    logger.error("Orchestration failure request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
    # Platform error bodies can carry manifest contents; keep them out of responses.
    return JSONResponse(status_code=status_code, content=_error_payload("Orchestration platform unavailable", request_id=request_id))

  logger.warning("Orchestration request rejected request_id=%s path=%s status_code=%s error=%s", request_id, request.url.path, status_code, exc)
  return JSONResponse(status_code=status_code, content=_error_payload(str(exc), request_id=request_id))
