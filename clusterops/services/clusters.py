"""Synchronous per-cluster operations that bypass the job queue."""

from __future__ import annotations

import logging

from clusterops.jobs.collaborators import ClusterEventInput, ClusterRecord, ClusterStatusUpdater, EventHistory
from clusterops.orchestration.errors import ResourceNotFoundError
from clusterops.orchestration.manager import ClusterMetrics, ClusterStatusSnapshot, DatabaseUserSpec, ExternalEndpoint, ResourceManager

logger = logging.getLogger(__name__)


class ClusterAccessService:
  """Reads cluster state and applies access changes directly against the resource manager."""

  def __init__(self, *, resources: ResourceManager, clusters: ClusterStatusUpdater, events: EventHistory) -> None:
    self._resources = resources
    self._clusters = clusters
    self._events = events

  async def _require_cluster(self, project_id: str, cluster_id: str) -> ClusterRecord:
    cluster = await self._clusters.get_cluster(cluster_id)
    if cluster is None or cluster.project_id != project_id:
      raise ResourceNotFoundError(f"Cluster {cluster_id} not found in project {project_id}", status=404)
    return cluster

  async def get_status(self, project_id: str, cluster_id: str) -> ClusterStatusSnapshot:
    await self._require_cluster(project_id, cluster_id)
    return await self._resources.get_cluster_status(cluster_id, project_id)

  async def get_metrics(self, project_id: str, cluster_id: str) -> ClusterMetrics:
    await self._require_cluster(project_id, cluster_id)
    return await self._resources.get_cluster_metrics(cluster_id, project_id)

  async def list_events(self, project_id: str, cluster_id: str, limit: int = 50) -> list[ClusterEventInput]:
    await self._require_cluster(project_id, cluster_id)
    return await self._events.list_for_cluster(cluster_id, limit)

  async def update_network_policy(self, project_id: str, cluster_id: str, allowed_cidrs: list[str]) -> None:
    await self._require_cluster(project_id, cluster_id)
    await self._resources.update_network_policy(cluster_id, project_id, allowed_cidrs)
    logger.info("Network policy for cluster %s updated with %d CIDR(s)", cluster_id, len(allowed_cidrs))

  async def enable_external_access(self, project_id: str, cluster_id: str) -> ExternalEndpoint | None:
    cluster = await self._require_cluster(project_id, cluster_id)
    return await self._resources.enable_external_access(cluster_id, project_id, cluster.plan)

  async def create_user(self, project_id: str, cluster_id: str, user: DatabaseUserSpec) -> None:
    cluster = await self._require_cluster(project_id, cluster_id)
    await self._resources.create_database_user(cluster_id, project_id, cluster.plan, user)

  async def update_user(self, project_id: str, cluster_id: str, user: DatabaseUserSpec) -> None:
    cluster = await self._require_cluster(project_id, cluster_id)
    await self._resources.update_database_user(cluster_id, project_id, cluster.plan, user)

  async def delete_user(self, project_id: str, cluster_id: str, username: str) -> None:
    cluster = await self._require_cluster(project_id, cluster_id)
    await self._resources.delete_database_user(cluster_id, project_id, cluster.plan, username)
