from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from clusterops.api.routes import clusters, jobs
from clusterops.config import get_settings
from clusterops.core.exceptions import global_exception_handler, http_exception_handler, job_exception_handler, orchestration_exception_handler, request_validation_exception_handler
from clusterops.core.lifespan import lifespan
from clusterops.core.middleware import RequestLoggingMiddleware
from clusterops.jobs.errors import ClusterBusyError, JobValidationError
from clusterops.orchestration.errors import OrchestrationError

APP_VERSION = "0.1.0"

settings = get_settings()

app = FastAPI(title="clusterops", version=APP_VERSION, lifespan=lifespan, docs_url=None, redoc_url=None)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length"])

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(JobValidationError, job_exception_handler)
app.add_exception_handler(ClusterBusyError, job_exception_handler)
app.add_exception_handler(OrchestrationError, orchestration_exception_handler)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check(request: Request) -> dict[str, str]:
  """Return a simple health status and the active orchestration mode."""
  mode = getattr(request.app.state, "orchestration_mode", None) or "unknown"
  return {"status": "ok", "version": APP_VERSION, "orchestrationMode": mode}


app.include_router(jobs.router, prefix="/v1/jobs", tags=["jobs"])
app.include_router(clusters.router, prefix="/v1", tags=["clusters"])
