import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, status

from clusterops.api.deps import get_container, require_internal_token
from clusterops.api.models import ClusterEventResponse, DatabaseUserCreateRequest, DatabaseUserUpdateRequest, ExternalAccessResponse, JobResponse, NetworkPolicyRequest
from clusterops.core.container import ServiceContainer
from clusterops.orchestration.manager import DatabaseRole, DatabaseUserSpec

router = APIRouter(dependencies=[Depends(require_internal_token)])
logger = logging.getLogger("clusterops.api.routes.clusters")

_CLUSTER_PATH = "/projects/{project_id}/clusters/{cluster_id}"


@router.get("/clusters/{cluster_id}/jobs", response_model=list[JobResponse], response_model_by_alias=True)
async def list_cluster_jobs(cluster_id: str, container: ServiceContainer = Depends(get_container)) -> list[JobResponse]:  # noqa: B008
  """List every job that targeted a cluster, newest first."""
  records = await container.jobs.list_for_cluster(cluster_id)
  return [JobResponse.from_record(record) for record in records]


@router.get(f"{_CLUSTER_PATH}/status")
async def get_cluster_status(project_id: str, cluster_id: str, container: ServiceContainer = Depends(get_container)) -> dict[str, Any]:  # noqa: B008
  snapshot = await container.clusters.get_status(project_id, cluster_id)
  return snapshot.as_dict()


@router.get(f"{_CLUSTER_PATH}/metrics")
async def get_cluster_metrics(project_id: str, cluster_id: str, container: ServiceContainer = Depends(get_container)) -> dict[str, Any]:  # noqa: B008
  metrics = await container.clusters.get_metrics(project_id, cluster_id)
  return metrics.as_dict()


@router.get(f"{_CLUSTER_PATH}/events", response_model=list[ClusterEventResponse], response_model_by_alias=True)
async def list_cluster_events(project_id: str, cluster_id: str, limit: int = Query(default=50, ge=1, le=200), container: ServiceContainer = Depends(get_container)) -> list[ClusterEventResponse]:  # noqa: B008
  """Most recent timeline events of a cluster, newest first."""
  events = await container.clusters.list_events(project_id, cluster_id, limit)
  return [ClusterEventResponse.from_event(event) for event in events]


@router.put(f"{_CLUSTER_PATH}/network-policy")
async def update_network_policy(project_id: str, cluster_id: str, request: NetworkPolicyRequest, container: ServiceContainer = Depends(get_container)) -> dict[str, Any]:  # noqa: B008
  """Replace the cluster's ingress allow-list."""
  await container.clusters.update_network_policy(project_id, cluster_id, request.allowed_cidrs)
  return {"allowedCidrs": request.allowed_cidrs}


@router.post(f"{_CLUSTER_PATH}/external-access", response_model=ExternalAccessResponse, response_model_by_alias=True)
async def enable_external_access(project_id: str, cluster_id: str, container: ServiceContainer = Depends(get_container)) -> ExternalAccessResponse:  # noqa: B008
  endpoint = await container.clusters.enable_external_access(project_id, cluster_id)
  if endpoint is None:
    return ExternalAccessResponse(enabled=False)
  return ExternalAccessResponse(enabled=True, host=endpoint.host, port=endpoint.port)


@router.post(f"{_CLUSTER_PATH}/users", status_code=status.HTTP_201_CREATED)
async def create_database_user(project_id: str, cluster_id: str, request: DatabaseUserCreateRequest, container: ServiceContainer = Depends(get_container)) -> dict[str, str]:  # noqa: B008
  roles = tuple(DatabaseRole(role=role.role, db=role.db) for role in request.roles)
  await container.clusters.create_user(project_id, cluster_id, DatabaseUserSpec(username=request.username, password=request.password, roles=roles))
  return {"username": request.username}


@router.patch(f"{_CLUSTER_PATH}/users/{{username}}")
async def update_database_user(project_id: str, cluster_id: str, username: str, request: DatabaseUserUpdateRequest, container: ServiceContainer = Depends(get_container)) -> dict[str, str]:  # noqa: B008
  roles = tuple(DatabaseRole(role=role.role, db=role.db) for role in request.roles or [])
  await container.clusters.update_user(project_id, cluster_id, DatabaseUserSpec(username=username, password=request.password, roles=roles))
  return {"username": username}


@router.delete(f"{_CLUSTER_PATH}/users/{{username}}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_database_user(project_id: str, cluster_id: str, username: str, container: ServiceContainer = Depends(get_container)) -> None:  # noqa: B008
  await container.clusters.delete_user(project_id, cluster_id, username)
