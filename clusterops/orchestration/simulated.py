"""Resource manager used when no orchestration platform is reachable."""

from __future__ import annotations

import asyncio
import logging
import random

from clusterops.config import Settings
from clusterops.orchestration.manager import BackupJobRef, ClusterMetrics, ClusterSpec, ClusterStatusSnapshot, ConnectionInfo, DatabaseUserSpec, ExternalEndpoint, OrchestrationMode
from clusterops.orchestration.naming import MONGO_PORT, ClusterResourceNames, batch_job_name, namespace_name

logger = logging.getLogger(__name__)

SIMULATED_EXTERNAL_HOST = "203.0.113.1"
SIMULATED_EXTERNAL_PORT = 30017

# Artificial latency per operation, in milliseconds.
DELAYS_MS = {
  "create": 2000,
  "resize": 1500,
  "delete": 1000,
  "pause": 1500,
  "resume": 2000,
  "create_user": 500,
  "update_user": 500,
  "delete_user": 300,
  "network_policy": 300,
  "external_access": 300,
  "backup": 3000,
  "restore": 4000,
}


class SimulatedResourceManager:
  """Short-circuits every mutation after a delay and returns deterministic data.

  Never models failure.
  """

  def __init__(self, settings: Settings, *, rng: random.Random | None = None) -> None:
    self._settings = settings
    self._delay_scale = settings.simulated_delay_scale
    self._rng = rng or random.Random()

  @property
  def mode(self) -> OrchestrationMode:
    return "simulated"

  async def close(self) -> None:
    return None

  async def _delay(self, operation: str, target: str) -> None:
    logger.debug("[SIM] %s %s", operation, target)
    seconds = DELAYS_MS[operation] / 1000 * self._delay_scale
    if seconds > 0:
      await asyncio.sleep(seconds)

  def _names(self, cluster_id: str, project_id: str) -> ClusterResourceNames:
    # Simulated clusters always look operator-managed so the host carries the -svc suffix.
    return ClusterResourceNames.for_cluster(prefix=self._settings.k8s_namespace_prefix, project_id=project_id, cluster_id=cluster_id, operator_managed=True)

  async def ensure_namespace(self, project_id: str) -> str:
    return namespace_name(self._settings.k8s_namespace_prefix, project_id)

  async def delete_namespace(self, project_id: str) -> None:
    logger.debug("[SIM] delete namespace for project %s", project_id)

  async def create_mongo_cluster(self, spec: ClusterSpec) -> ConnectionInfo:
    names = self._names(spec.cluster_id, spec.project_id)
    await self._delay("create", names.resource)
    return ConnectionInfo(host=names.host, port=MONGO_PORT, replica_set=names.resource, srv=f"mongodb+srv://{names.host}", external_host=SIMULATED_EXTERNAL_HOST, external_port=SIMULATED_EXTERNAL_PORT)

  async def resize_mongo_cluster(self, cluster_id: str, project_id: str, new_plan: str, *, current_plan: str | None = None) -> None:
    await self._delay("resize", f"{self._names(cluster_id, project_id).resource} -> {new_plan}")

  async def delete_mongo_cluster(self, cluster_id: str, project_id: str) -> None:
    await self._delay("delete", self._names(cluster_id, project_id).resource)

  async def pause_mongo_cluster(self, cluster_id: str, project_id: str, *, plan: str | None = None) -> None:
    await self._delay("pause", self._names(cluster_id, project_id).resource)

  async def resume_mongo_cluster(self, cluster_id: str, project_id: str, plan: str) -> None:
    await self._delay("resume", self._names(cluster_id, project_id).resource)

  async def create_database_user(self, cluster_id: str, project_id: str, plan: str, user: DatabaseUserSpec) -> None:
    await self._delay("create_user", user.username)

  async def update_database_user(self, cluster_id: str, project_id: str, plan: str, user: DatabaseUserSpec) -> None:
    await self._delay("update_user", user.username)

  async def delete_database_user(self, cluster_id: str, project_id: str, plan: str, username: str) -> None:
    await self._delay("delete_user", username)

  async def update_network_policy(self, cluster_id: str, project_id: str, allowed_cidrs: list[str]) -> None:
    await self._delay("network_policy", self._names(cluster_id, project_id).network_policy)

  async def enable_external_access(self, cluster_id: str, project_id: str, plan: str) -> ExternalEndpoint | None:
    await self._delay("external_access", self._names(cluster_id, project_id).external_service)
    return ExternalEndpoint(host=SIMULATED_EXTERNAL_HOST, port=SIMULATED_EXTERNAL_PORT)

  async def get_cluster_status(self, cluster_id: str, project_id: str) -> ClusterStatusSnapshot:
    return ClusterStatusSnapshot(phase="Running", ready=True, replicas=1, ready_replicas=1, message="Simulated cluster")

  async def create_backup(self, cluster_id: str, project_id: str, backup_id: str, *, plan: str | None = None) -> BackupJobRef:
    names = self._names(cluster_id, project_id)
    await self._delay("backup", backup_id)
    return BackupJobRef(namespace=names.namespace, job_name=batch_job_name("backup", backup_id), archive_path=f"/backup/{backup_id}.gz")

  async def restore_backup(self, cluster_id: str, project_id: str, backup_id: str, *, plan: str | None = None, databases: list[str] | None = None, collections: list[str] | None = None) -> BackupJobRef:
    names = self._names(cluster_id, project_id)
    await self._delay("restore", backup_id)
    return BackupJobRef(namespace=names.namespace, job_name=batch_job_name("restore", backup_id), archive_path=f"/backup/{backup_id}.gz")

  async def get_cluster_metrics(self, cluster_id: str, project_id: str) -> ClusterMetrics:
    return ClusterMetrics(
      cpu=self._rng.uniform(10, 60),
      memory=self._rng.uniform(20, 80),
      storage=self._rng.uniform(10, 50),
      connections=self._rng.randint(5, 54),
    )
