"""Strategy interface shared by the live and simulated resource managers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

OrchestrationMode = Literal["live", "simulated"]


@dataclass(frozen=True)
class ClusterSpec:
  """Everything needed to provision a cluster's resources."""

  cluster_id: str
  project_id: str
  plan: str
  mongo_version: str | None = None
  username: str = "admin"
  password: str = ""


@dataclass(frozen=True)
class ConnectionInfo:
  host: str
  port: int
  replica_set: str | None = None
  srv: str | None = None
  external_host: str | None = None
  external_port: int | None = None

  def as_dict(self) -> dict[str, Any]:
    payload: dict[str, Any] = {"host": self.host, "port": self.port}
    if self.replica_set:
      payload["replicaSet"] = self.replica_set
    if self.srv:
      payload["srv"] = self.srv
    if self.external_host:
      payload["externalHost"] = self.external_host
    if self.external_port:
      payload["externalPort"] = self.external_port
    return payload


@dataclass(frozen=True)
class ExternalEndpoint:
  host: str
  port: int


@dataclass(frozen=True)
class ClusterStatusSnapshot:
  """Normalized status read back from the orchestration platform."""

  phase: str
  ready: bool
  replicas: int
  ready_replicas: int
  message: str | None = None

  def as_dict(self) -> dict[str, Any]:
    return {"phase": self.phase, "ready": self.ready, "replicas": self.replicas, "readyReplicas": self.ready_replicas, "message": self.message}


@dataclass(frozen=True)
class ClusterMetrics:
  cpu: float = 0.0
  memory: float = 0.0
  storage: float = 0.0
  connections: int = 0

  def as_dict(self) -> dict[str, Any]:
    return {"cpu": self.cpu, "memory": self.memory, "storage": self.storage, "connections": self.connections}


@dataclass(frozen=True)
class DatabaseRole:
  role: str
  db: str


@dataclass(frozen=True)
class DatabaseUserSpec:
  username: str
  password: str | None = None
  roles: tuple[DatabaseRole, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BackupJobRef:
  """The batch job created for a backup or restore."""

  namespace: str
  job_name: str
  archive_path: str


class ResourceManager(Protocol):
  """Create, update, delete, scale and inspect a cluster's orchestration resources."""

  @property
  def mode(self) -> OrchestrationMode:
    """Whether calls reach a live orchestration platform."""

  async def ensure_namespace(self, project_id: str) -> str:
    """Create the project namespace and its RBAC if absent; return its name."""

  async def delete_namespace(self, project_id: str) -> None:
    """Delete the project namespace; a missing namespace is not an error."""

  async def create_mongo_cluster(self, spec: ClusterSpec) -> ConnectionInfo:
    """Provision a cluster on the strategy its tier selects."""

  async def resize_mongo_cluster(self, cluster_id: str, project_id: str, new_plan: str, *, current_plan: str | None = None) -> None:
    """Apply a new tier's replica count and resources."""

  async def delete_mongo_cluster(self, cluster_id: str, project_id: str) -> None:
    """Remove every resource belonging to a cluster."""

  async def pause_mongo_cluster(self, cluster_id: str, project_id: str, *, plan: str | None = None) -> None:
    """Scale a cluster to zero members."""

  async def resume_mongo_cluster(self, cluster_id: str, project_id: str, plan: str) -> None:
    """Scale a cluster back to its tier's member count."""

  async def create_database_user(self, cluster_id: str, project_id: str, plan: str, user: DatabaseUserSpec) -> None:
    """Add a database user to an operator-managed cluster."""

  async def update_database_user(self, cluster_id: str, project_id: str, plan: str, user: DatabaseUserSpec) -> None:
    """Change a database user's password or roles."""

  async def delete_database_user(self, cluster_id: str, project_id: str, plan: str, username: str) -> None:
    """Remove a database user."""

  async def update_network_policy(self, cluster_id: str, project_id: str, allowed_cidrs: list[str]) -> None:
    """Rebuild the ingress rules: same namespace plus one rule per CIDR."""

  async def enable_external_access(self, cluster_id: str, project_id: str, plan: str) -> ExternalEndpoint | None:
    """Expose a cluster through a node port."""

  async def get_cluster_status(self, cluster_id: str, project_id: str) -> ClusterStatusSnapshot:
    """Read phase, readiness and replica counts."""

  async def create_backup(self, cluster_id: str, project_id: str, backup_id: str, *, plan: str | None = None) -> BackupJobRef:
    """Start a one-shot dump job."""

  async def restore_backup(self, cluster_id: str, project_id: str, backup_id: str, *, plan: str | None = None, databases: list[str] | None = None, collections: list[str] | None = None) -> BackupJobRef:
    """Start a one-shot restore job."""

  async def get_cluster_metrics(self, cluster_id: str, project_id: str) -> ClusterMetrics:
    """Read CPU and memory usage; never raises."""

  async def close(self) -> None:
    """Release client connections."""
