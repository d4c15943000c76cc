import logging

from fastapi import APIRouter, Depends, HTTPException, status

from clusterops.api.deps import get_container, require_internal_token
from clusterops.api.models import JobCreateRequest, JobResponse
from clusterops.core.container import ServiceContainer
from clusterops.jobs.models import JobTargets

router = APIRouter(dependencies=[Depends(require_internal_token)])
logger = logging.getLogger("clusterops.api.routes.jobs")

_JOB_NOT_FOUND_MSG = "Job not found."


@router.post("", response_model=JobResponse, response_model_by_alias=True, status_code=status.HTTP_201_CREATED)
async def create_job(request: JobCreateRequest, container: ServiceContainer = Depends(get_container)) -> JobResponse:  # noqa: B008
  """Enqueue a cluster operation for the background processor."""
  targets = JobTargets(cluster_id=request.target_cluster_id, project_id=request.target_project_id, org_id=request.target_org_id)
  record = await container.jobs.enqueue(request.type, targets, request.payload, max_attempts=request.max_attempts, exclusive=request.exclusive)
  return JobResponse.from_record(record)


@router.get("/stats")
async def get_job_stats(container: ServiceContainer = Depends(get_container)) -> dict[str, int]:  # noqa: B008
  """Return job counts per status."""
  return await container.jobs.stats()


@router.get("/{job_id}", response_model=JobResponse, response_model_by_alias=True)
async def get_job(job_id: str, container: ServiceContainer = Depends(get_container)) -> JobResponse:  # noqa: B008
  record = await container.jobs.get(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return JobResponse.from_record(record)


@router.post("/{job_id}/cancel", response_model=JobResponse, response_model_by_alias=True)
async def cancel_job(job_id: str, container: ServiceContainer = Depends(get_container)) -> JobResponse:  # noqa: B008
  """Cancel a pending or in-progress job; terminal jobs are returned unchanged."""
  record = await container.jobs.cancel(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return JobResponse.from_record(record)


@router.post("/{job_id}/retry", response_model=JobResponse, response_model_by_alias=True)
async def retry_job(job_id: str, container: ServiceContainer = Depends(get_container)) -> JobResponse:  # noqa: B008
  """Requeue a failed or canceled job with a fresh attempt budget."""
  record = await container.jobs.retry(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return JobResponse.from_record(record)
