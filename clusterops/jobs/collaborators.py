"""Narrow capabilities the job engine needs from the rest of the control plane."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from clusterops.orchestration.manager import ConnectionInfo

ClusterStatus = Literal["creating", "ready", "updating", "deleting", "failed", "degraded", "stopped", "pausing", "paused", "resuming"]
EventSeverity = Literal["info", "warning", "error"]


class RecordNotFoundError(LookupError):
  """Raised when a collaborator record referenced by a job does not exist."""


@dataclass(frozen=True)
class ClusterRecord:
  id: str
  org_id: str
  project_id: str
  name: str
  plan: str
  status: str
  mongo_version: str | None = None
  created_by: str | None = None


@dataclass(frozen=True)
class ClusterEventInput:
  org_id: str
  type: str
  severity: EventSeverity
  message: str
  project_id: str | None = None
  cluster_id: str | None = None
  metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class BackupStats:
  size_bytes: int
  compressed_size_bytes: int
  storage_path: str
  databases: list[str] = field(default_factory=list)
  collections: int = 0
  documents: int = 0
  indexes: int = 0

  def metadata(self) -> dict[str, Any]:
    return {"databases": list(self.databases), "collections": self.collections, "documents": self.documents, "indexes": self.indexes}


@dataclass(frozen=True)
class UserContact:
  id: str
  email: str
  name: str | None = None


@dataclass(frozen=True)
class ProjectInfo:
  id: str
  name: str


class ClusterStatusUpdater(Protocol):
  async def get_cluster(self, cluster_id: str) -> ClusterRecord | None: ...

  async def update_status(self, cluster_id: str, status: ClusterStatus, connection: ConnectionInfo | None = None) -> None: ...

  async def update_plan(self, cluster_id: str, plan: str) -> None: ...

  async def mark_as_paused(self, cluster_id: str) -> None: ...

  async def mark_as_resumed(self, cluster_id: str) -> None: ...

  async def hard_delete(self, cluster_id: str) -> None:
    """Remove the cluster and its dependent records; a missing cluster is not an error."""


class EventRecorder(Protocol):
  async def create_event(self, event: ClusterEventInput) -> None: ...


class EventHistory(Protocol):
  async def list_for_cluster(self, cluster_id: str, limit: int = 50) -> list[ClusterEventInput]: ...


class BackupLifecycle(Protocol):
  async def start_backup(self, backup_id: str) -> None: ...

  async def complete_backup(self, backup_id: str, stats: BackupStats) -> None: ...

  async def complete_restore(self, backup_id: str) -> None: ...


class ClusterNotifier(Protocol):
  async def send_cluster_ready(self, email: str, cluster_name: str, connection_string: str, project_name: str) -> None:
    """Deliver a "cluster ready" message; failures must not propagate."""


class DirectoryLookup(Protocol):
  async def find_user(self, user_id: str) -> UserContact | None: ...

  async def find_project(self, project_id: str) -> ProjectInfo | None: ...
