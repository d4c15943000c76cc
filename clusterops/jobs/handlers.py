"""Per-type handlers that turn a cluster job into resource-manager calls and state updates."""

from __future__ import annotations

import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from clusterops.jobs.collaborators import BackupLifecycle, BackupStats, ClusterEventInput, ClusterNotifier, ClusterStatus, ClusterStatusUpdater, DirectoryLookup, EventRecorder
from clusterops.jobs.dispatch import JobHandler, JobHandlerRegistry
from clusterops.jobs.errors import JobValidationError
from clusterops.jobs.models import JobRecord
from clusterops.orchestration.manager import ClusterSpec, ClusterStatusSnapshot, ConnectionInfo, ResourceManager
from clusterops.orchestration.profiles import LOWEST_TIER

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)

# Cluster states that a status sync must not overwrite.
SYNC_PRESERVED_STATES = frozenset({"paused", "pausing", "resuming", "deleting", "updating"})


class _Payload(BaseModel):
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Credentials(_Payload):
  username: str = "admin"
  password: str = Field(min_length=1)


class CreateClusterPayload(_Payload):
  plan: str
  mongo_version: str | None = None
  credentials: Credentials
  cluster_name: str | None = None
  created_by: str | None = None


class ResizeClusterPayload(_Payload):
  new_plan: str
  old_plan: str | None = None


class PauseClusterPayload(_Payload):
  reason: str | None = None
  plan: str | None = None


class ResumeClusterPayload(_Payload):
  reason: str | None = None
  plan: str | None = None


class BackupClusterPayload(_Payload):
  backup_id: str
  plan: str | None = None


class RestoreClusterPayload(_Payload):
  backup_id: str
  plan: str | None = None
  databases: list[str] | None = None
  collections: list[str] | None = None


def _parse_payload(model: type[PayloadT], job: JobRecord) -> PayloadT:
  try:
    return model.model_validate(job.payload or {})
  except ValidationError as exc:
    raise JobValidationError(f"Invalid {job.type} payload: {exc.error_count()} error(s): {exc.errors(include_input=False)}") from exc


def _require(value: str | None, name: str, job: JobRecord) -> str:
  if not value:
    raise JobValidationError(f"{job.type} job {job.id} is missing {name}")
  return value


def map_phase_to_cluster_status(snapshot: ClusterStatusSnapshot) -> ClusterStatus:
  """Translate an orchestration phase into the cluster status shown to tenants."""
  phase = snapshot.phase.lower()
  if phase == "running" and snapshot.ready:
    return "ready"
  if phase in {"pending", "creating"}:
    return "creating"
  if phase in {"failed", "notfound"}:
    return "failed"
  return "degraded"


class _MethodHandler:
  """Adapter that exposes handler coroutine methods as registry handlers."""

  def __init__(self, method: Callable[[JobRecord], Awaitable[dict[str, Any]]]) -> None:
    self._method = method

  async def handle(self, job: JobRecord) -> dict[str, Any]:
    return await self._method(job)


class ClusterOperationHandlers:
  """One coroutine per job type, each orchestrating resource-manager and collaborator calls."""

  def __init__(
    self,
    *,
    resources: ResourceManager,
    clusters: ClusterStatusUpdater,
    events: EventRecorder,
    backups: BackupLifecycle,
    notifier: ClusterNotifier,
    directory: DirectoryLookup,
    rng: random.Random | None = None,
  ) -> None:
    self._resources = resources
    self._clusters = clusters
    self._events = events
    self._backups = backups
    self._notifier = notifier
    self._directory = directory
    self._rng = rng or random.Random()

  def build_registry(self) -> JobHandlerRegistry:
    handlers: dict[str, JobHandler] = {
      "CREATE_CLUSTER": _MethodHandler(self.create_cluster),
      "RESIZE_CLUSTER": _MethodHandler(self.resize_cluster),
      "DELETE_CLUSTER": _MethodHandler(self.delete_cluster),
      "PAUSE_CLUSTER": _MethodHandler(self.pause_cluster),
      "RESUME_CLUSTER": _MethodHandler(self.resume_cluster),
      "BACKUP_CLUSTER": _MethodHandler(self.backup_cluster),
      "RESTORE_CLUSTER": _MethodHandler(self.restore_cluster),
      "SYNC_STATUS": _MethodHandler(self.sync_status),
    }
    return JobHandlerRegistry(handlers)

  async def _event_org(self, job: JobRecord, cluster_id: str) -> str:
    """Org owning the job's events: the job target, else the cluster record's org."""
    if job.target_org_id:
      return job.target_org_id
    cluster = await self._clusters.get_cluster(cluster_id)
    if cluster is None or not cluster.org_id:
      raise JobValidationError(f"{job.type} job {job.id} is missing targetOrgId")
    return cluster.org_id

  async def _emit(self, job: JobRecord, org_id: str, event_type: str, message: str, *, severity: str = "info", metadata: dict[str, Any] | None = None) -> None:
    await self._events.create_event(
      ClusterEventInput(org_id=org_id, project_id=job.target_project_id, cluster_id=job.target_cluster_id, type=event_type, severity=severity, message=message, metadata=metadata)  # type: ignore[arg-type]
    )

  async def create_cluster(self, job: JobRecord) -> dict[str, Any]:
    cluster_id = _require(job.target_cluster_id, "targetClusterId", job)
    project_id = _require(job.target_project_id, "targetProjectId", job)
    payload = _parse_payload(CreateClusterPayload, job)
    org_id = await self._event_org(job, cluster_id)

    connection = await self._resources.create_mongo_cluster(
      ClusterSpec(cluster_id=cluster_id, project_id=project_id, plan=payload.plan, mongo_version=payload.mongo_version, username=payload.credentials.username, password=payload.credentials.password)
    )
    await self._clusters.update_status(cluster_id, "ready", connection)
    await self._emit(job, org_id, "CLUSTER_READY", "Cluster is ready for connections")
    await self._notify_cluster_ready(job, payload, connection)
    return {"connection": connection.as_dict()}

  async def _notify_cluster_ready(self, job: JobRecord, payload: CreateClusterPayload, connection: ConnectionInfo) -> None:
    """Send the creator a "cluster ready" email; never fails the job."""
    if not payload.created_by:
      return
    cluster_name = payload.cluster_name or str(job.target_cluster_id)
    try:
      user = await self._directory.find_user(payload.created_by)
      if user is None or not user.email:
        return
      project = await self._directory.find_project(str(job.target_project_id))
      connection_string = f"mongodb://{payload.credentials.username or 'admin'}:****@{connection.host}:{connection.port}"
      await self._notifier.send_cluster_ready(user.email, cluster_name, connection_string, project.name if project else str(job.target_project_id))
      logger.info("Sent cluster ready notification for cluster %s", job.target_cluster_id)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Failed to send cluster ready notification for cluster %s: %s", job.target_cluster_id, exc)

  async def resize_cluster(self, job: JobRecord) -> dict[str, Any]:
    cluster_id = _require(job.target_cluster_id, "targetClusterId", job)
    project_id = _require(job.target_project_id, "targetProjectId", job)
    payload = _parse_payload(ResizeClusterPayload, job)
    org_id = await self._event_org(job, cluster_id)
    old_plan = payload.old_plan
    if old_plan is None:
      cluster = await self._clusters.get_cluster(cluster_id)
      old_plan = cluster.plan if cluster else None

    await self._resources.resize_mongo_cluster(cluster_id, project_id, payload.new_plan, current_plan=old_plan)
    await self._clusters.update_plan(cluster_id, payload.new_plan)
    await self._clusters.update_status(cluster_id, "ready")
    await self._emit(job, org_id, "CLUSTER_RESIZED", f"Cluster resized from {old_plan} to {payload.new_plan}", metadata={"oldPlan": old_plan, "newPlan": payload.new_plan})
    return {"oldPlan": old_plan, "newPlan": payload.new_plan}

  async def delete_cluster(self, job: JobRecord) -> dict[str, Any]:
    cluster_id = _require(job.target_cluster_id, "targetClusterId", job)
    project_id = _require(job.target_project_id, "targetProjectId", job)
    org_id = await self._event_org(job, cluster_id)

    await self._resources.delete_mongo_cluster(cluster_id, project_id)
    await self._clusters.hard_delete(cluster_id)
    await self._emit(job, org_id, "CLUSTER_DELETED", "Cluster has been deleted")
    return {"deleted": True}

  async def pause_cluster(self, job: JobRecord) -> dict[str, Any]:
    cluster_id = _require(job.target_cluster_id, "targetClusterId", job)
    project_id = _require(job.target_project_id, "targetProjectId", job)
    payload = _parse_payload(PauseClusterPayload, job)
    org_id = await self._event_org(job, cluster_id)

    await self._resources.pause_mongo_cluster(cluster_id, project_id, plan=payload.plan)
    await self._clusters.mark_as_paused(cluster_id)
    await self._emit(job, org_id, "CLUSTER_UPDATED", f"Cluster paused: {payload.reason or 'user requested'}", metadata={"action": "pause", "reason": payload.reason})
    return {"paused": True}

  async def resume_cluster(self, job: JobRecord) -> dict[str, Any]:
    cluster_id = _require(job.target_cluster_id, "targetClusterId", job)
    project_id = _require(job.target_project_id, "targetProjectId", job)
    payload = _parse_payload(ResumeClusterPayload, job)
    org_id = await self._event_org(job, cluster_id)
    plan = payload.plan or LOWEST_TIER

    await self._resources.resume_mongo_cluster(cluster_id, project_id, plan)
    await self._clusters.mark_as_resumed(cluster_id)
    await self._emit(job, org_id, "CLUSTER_READY", f"Cluster resumed: {payload.reason or 'user requested'}", metadata={"action": "resume", "reason": payload.reason})
    return {"resumed": True, "plan": plan}

  async def backup_cluster(self, job: JobRecord) -> dict[str, Any]:
    cluster_id = _require(job.target_cluster_id, "targetClusterId", job)
    project_id = _require(job.target_project_id, "targetProjectId", job)
    payload = _parse_payload(BackupClusterPayload, job)

    await self._backups.start_backup(payload.backup_id)
    ref = await self._resources.create_backup(cluster_id, project_id, payload.backup_id, plan=payload.plan)
    # TODO: poll the batch job and report its real outcome instead of synthesized statistics.
    stats = self._synthesize_backup_stats(cluster_id, payload.backup_id)
    await self._backups.complete_backup(payload.backup_id, stats)
    return {"backupId": payload.backup_id, "jobName": ref.job_name, "sizeBytes": stats.size_bytes, "storagePath": stats.storage_path}

  def _synthesize_backup_stats(self, cluster_id: str, backup_id: str) -> BackupStats:
    size_bytes = self._rng.randrange(0, 100 * 1024 * 1024) + 10 * 1024 * 1024
    return BackupStats(
      size_bytes=size_bytes,
      compressed_size_bytes=int(size_bytes * 0.6),
      storage_path=f"/backups/{cluster_id}/{backup_id}.archive",
      databases=["admin", "local", "test"],
      collections=self._rng.randint(5, 24),
      documents=self._rng.randint(1000, 10999),
      indexes=self._rng.randint(10, 39),
    )

  async def restore_cluster(self, job: JobRecord) -> dict[str, Any]:
    cluster_id = _require(job.target_cluster_id, "targetClusterId", job)
    project_id = _require(job.target_project_id, "targetProjectId", job)
    payload = _parse_payload(RestoreClusterPayload, job)
    org_id = await self._event_org(job, cluster_id)

    ref = await self._resources.restore_backup(cluster_id, project_id, payload.backup_id, plan=payload.plan, databases=payload.databases, collections=payload.collections)
    await self._backups.complete_restore(payload.backup_id)
    await self._emit(job, org_id, "BACKUP_RESTORE_COMPLETED", "Restore completed from backup", metadata={"backupId": payload.backup_id})
    return {"backupId": payload.backup_id, "jobName": ref.job_name}

  async def sync_status(self, job: JobRecord) -> dict[str, Any]:
    cluster_id = _require(job.target_cluster_id, "targetClusterId", job)
    project_id = _require(job.target_project_id, "targetProjectId", job)

    snapshot = await self._resources.get_cluster_status(cluster_id, project_id)
    observed = map_phase_to_cluster_status(snapshot)
    cluster = await self._clusters.get_cluster(cluster_id)
    if cluster is not None and cluster.status not in SYNC_PRESERVED_STATES and cluster.status != observed:
      logger.info("Cluster %s status %s -> %s (phase=%s)", cluster_id, cluster.status, observed, snapshot.phase)
      await self._clusters.update_status(cluster_id, observed)
    return {**snapshot.as_dict(), "clusterStatus": observed}
