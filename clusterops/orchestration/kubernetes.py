"""Live resource manager backed by the Kubernetes API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, TypeVar

import aiohttp
from kubernetes_asyncio import client
from kubernetes_asyncio.client.exceptions import ApiException
from kubernetes_asyncio.stream import WsApiClient

from clusterops.config import Settings
from clusterops.orchestration import manifests
from clusterops.orchestration.errors import OrchestrationError, ResourceConflictError, ResourceNotFoundError, UnsupportedOperationError, UnsupportedResizeError, translate_api_error
from clusterops.orchestration.manager import BackupJobRef, ClusterMetrics, ClusterSpec, ClusterStatusSnapshot, ConnectionInfo, DatabaseUserSpec, ExternalEndpoint, OrchestrationMode
from clusterops.orchestration.metrics import aggregate_pod_metrics
from clusterops.orchestration.naming import LABEL_CLUSTER, LABEL_PLAN, MONGO_PORT, ClusterResourceNames, batch_job_name, namespace_name
from clusterops.orchestration.profiles import get_profile, is_operator_managed

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CR = (manifests.OPERATOR_GROUP, manifests.OPERATOR_VERSION)


@dataclass
class KubernetesApis:
  """Typed API groups sharing one authenticated client."""

  core: client.CoreV1Api
  apps: client.AppsV1Api
  networking: client.NetworkingV1Api
  custom: client.CustomObjectsApi
  rbac: client.RbacAuthorizationV1Api
  batch: client.BatchV1Api
  api_client: client.ApiClient | None = None
  # CoreV1Api bound to a websocket client; only pod exec goes through it.
  pod_exec: client.CoreV1Api | None = None

  @classmethod
  def from_api_client(cls, api_client: client.ApiClient) -> KubernetesApis:
    return cls(
      core=client.CoreV1Api(api_client),
      apps=client.AppsV1Api(api_client),
      networking=client.NetworkingV1Api(api_client),
      custom=client.CustomObjectsApi(api_client),
      rbac=client.RbacAuthorizationV1Api(api_client),
      batch=client.BatchV1Api(api_client),
      api_client=api_client,
      pod_exec=client.CoreV1Api(WsApiClient(configuration=api_client.configuration)),
    )

  async def close(self) -> None:
    if self.pod_exec is not None:
      await self.pod_exec.api_client.close()
    if self.api_client is not None:
      await self.api_client.close()


class KubernetesResourceManager:
  """Maps cluster intents onto namespaces, secrets, operator resources, workloads and jobs."""

  def __init__(self, apis: KubernetesApis, settings: Settings) -> None:
    self._apis = apis
    self._settings = settings

  @property
  def mode(self) -> OrchestrationMode:
    return "live"

  async def close(self) -> None:
    await self._apis.close()

  # Helpers

  async def _call(self, action: str, awaitable: Awaitable[T]) -> T:
    """Await an API call, translating client errors into the orchestration taxonomy."""
    try:
      return await awaitable
    except (ApiException, aiohttp.ClientError, asyncio.TimeoutError) as exc:
      raise translate_api_error(exc, action) from exc

  async def _ignore_missing(self, action: str, awaitable: Awaitable[Any]) -> None:
    try:
      await self._call(action, awaitable)
    except ResourceNotFoundError:
      logger.debug("%s: already absent", action)

  async def _create_unless_exists(self, action: str, awaitable: Awaitable[Any]) -> None:
    try:
      await self._call(action, awaitable)
    except ResourceConflictError:
      logger.debug("%s: already exists", action)

  def _names(self, cluster_id: str, project_id: str, operator_managed: bool) -> ClusterResourceNames:
    return ClusterResourceNames.for_cluster(prefix=self._settings.k8s_namespace_prefix, project_id=project_id, cluster_id=cluster_id, operator_managed=operator_managed)

  async def _resolve_names(self, cluster_id: str, project_id: str, plan: str | None) -> ClusterResourceNames:
    """Names for a cluster; without a plan the strategy is detected from the operator resource."""
    if plan is not None:
      return self._names(cluster_id, project_id, is_operator_managed(plan))
    names = self._names(cluster_id, project_id, False)
    return self._names(cluster_id, project_id, await self._operator_resource_exists(names))

  async def _get_operator_resource(self, names: ClusterResourceNames) -> dict[str, Any]:
    return await self._call(f"get {manifests.OPERATOR_KIND} {names.resource}", self._apis.custom.get_namespaced_custom_object(*_CR, names.namespace, manifests.OPERATOR_PLURAL, names.resource))

  async def _replace_operator_resource(self, names: ClusterResourceNames, body: dict[str, Any]) -> None:
    await self._call(f"replace {manifests.OPERATOR_KIND} {names.resource}", self._apis.custom.replace_namespaced_custom_object(*_CR, names.namespace, manifests.OPERATOR_PLURAL, names.resource, body))

  async def _operator_resource_exists(self, names: ClusterResourceNames) -> bool:
    try:
      await self._get_operator_resource(names)
    except ResourceNotFoundError:
      return False
    return True

  async def _stateful_set_exists(self, names: ClusterResourceNames) -> bool:
    try:
      await self._call(f"read statefulset {names.resource}", self._apis.apps.read_namespaced_stateful_set(names.resource, names.namespace))
    except ResourceNotFoundError:
      return False
    return True

  # Namespaces

  async def ensure_namespace(self, project_id: str) -> str:
    namespace = namespace_name(self._settings.k8s_namespace_prefix, project_id)
    try:
      await self._call(f"read namespace {namespace}", self._apis.core.read_namespace(namespace))
      return namespace
    except ResourceNotFoundError:
      pass

    try:
      await self._call(f"create namespace {namespace}", self._apis.core.create_namespace(manifests.namespace_body(namespace, project_id)))
    except ResourceConflictError:
      # Created concurrently; the creator bootstraps RBAC.
      return namespace
    logger.info("Created namespace %s", namespace)
    await self._bootstrap_rbac(namespace)
    return namespace

  async def _bootstrap_rbac(self, namespace: str) -> None:
    """Create the operator's service account, role and binding; failures are logged, not raised."""
    service_account, role, binding = manifests.rbac_bodies(namespace)
    steps = (
      ("service account", self._apis.core.create_namespaced_service_account, service_account),
      ("role", self._apis.rbac.create_namespaced_role, role),
      ("role binding", self._apis.rbac.create_namespaced_role_binding, binding),
    )
    for label, create, body in steps:
      try:
        await self._create_unless_exists(f"create {label} in {namespace}", create(namespace, body))
      except OrchestrationError as exc:
        logger.warning("RBAC bootstrap step failed namespace=%s step=%s error=%s", namespace, label, exc)

  async def delete_namespace(self, project_id: str) -> None:
    namespace = namespace_name(self._settings.k8s_namespace_prefix, project_id)
    await self._ignore_missing(f"delete namespace {namespace}", self._apis.core.delete_namespace(namespace))

  # Secrets

  async def create_credentials_secret(self, namespace: str, name: str, string_data: dict[str, str], labels: dict[str, str]) -> None:
    """Upsert an opaque secret: replace when present, create on 404."""
    body = manifests.secret_body(namespace, name, string_data, labels)
    try:
      await self._call(f"read secret {name}", self._apis.core.read_namespaced_secret(name, namespace))
    except ResourceNotFoundError:
      await self._call(f"create secret {name}", self._apis.core.create_namespaced_secret(namespace, body))
      return
    await self._call(f"replace secret {name}", self._apis.core.replace_namespaced_secret(name, namespace, body))

  # Cluster lifecycle

  async def create_mongo_cluster(self, spec: ClusterSpec) -> ConnectionInfo:
    profile = get_profile(spec.plan)
    names = self._names(spec.cluster_id, spec.project_id, profile.operator_managed)
    labels = names.labels(cluster_id=spec.cluster_id, project_id=spec.project_id, plan=profile.tier)
    logger.info("Creating cluster %s in %s plan=%s operator=%s", names.resource, names.namespace, profile.tier, profile.operator_managed)

    await self.ensure_namespace(spec.project_id)
    await self.create_credentials_secret(names.namespace, names.admin_secret, {"username": spec.username, "password": spec.password}, labels)

    if profile.operator_managed:
      body = manifests.operator_resource_body(names, profile, labels=labels, username=spec.username, mongo_version=spec.mongo_version or self._settings.mongo_version, storage_class=self._settings.k8s_storage_class)
      await self._apply_operator_resource(names, body)
    else:
      workload = manifests.stateful_set_body(names, profile, labels=labels, image=self._settings.mongo_image, storage_class=self._settings.k8s_storage_class)
      await self._create_unless_exists(f"create statefulset {names.resource}", self._apis.apps.create_namespaced_stateful_set(names.namespace, workload))
      await self._create_unless_exists(f"create service {names.service}", self._apis.core.create_namespaced_service(names.namespace, manifests.headless_service_body(names, labels=labels)))

    await self._create_unless_exists(f"create network policy {names.network_policy}", self._apis.networking.create_namespaced_network_policy(names.namespace, manifests.network_policy_body(names)))

    try:
      await self._ensure_backup_pvc(names)
    except OrchestrationError as exc:
      logger.warning("Backup volume not created for %s: %s", names.resource, exc)

    external: ExternalEndpoint | None = None
    try:
      external = await self._expose(names, labels)
    except OrchestrationError as exc:
      logger.warning("External access not configured for %s: %s", names.resource, exc)

    return ConnectionInfo(
      host=names.host,
      port=MONGO_PORT,
      replica_set=names.resource if profile.operator_managed else None,
      srv=f"mongodb+srv://{names.host}" if profile.operator_managed else None,
      external_host=external.host if external else None,
      external_port=external.port if external else None,
    )

  async def _apply_operator_resource(self, names: ClusterResourceNames, body: dict[str, Any]) -> None:
    try:
      existing = await self._get_operator_resource(names)
    except ResourceNotFoundError:
      await self._call(f"create {manifests.OPERATOR_KIND} {names.resource}", self._apis.custom.create_namespaced_custom_object(*_CR, names.namespace, manifests.OPERATOR_PLURAL, body))
      return
    body["metadata"]["resourceVersion"] = (existing.get("metadata") or {}).get("resourceVersion")
    await self._replace_operator_resource(names, body)

  async def resize_mongo_cluster(self, cluster_id: str, project_id: str, new_plan: str, *, current_plan: str | None = None) -> None:
    profile = get_profile(new_plan)
    if current_plan is not None and is_operator_managed(current_plan) != profile.operator_managed:
      raise UnsupportedResizeError(f"Cannot resize {cluster_id} from {current_plan} to {new_plan}: the tiers use different deployment strategies")
    names = self._names(cluster_id, project_id, profile.operator_managed)
    logger.info("Resizing cluster %s to %s", names.resource, profile.tier)

    if profile.operator_managed:
      try:
        resource = await self._get_operator_resource(names)
      except ResourceNotFoundError:
        if await self._stateful_set_exists(names):
          raise UnsupportedResizeError(f"Cannot move {cluster_id} onto the operator-managed strategy") from None
        raise
      resource.setdefault("metadata", {}).setdefault("labels", {})[LABEL_PLAN] = profile.tier
      spec = resource.setdefault("spec", {})
      spec["members"] = profile.replicas
      containers = spec.setdefault("statefulSet", {}).setdefault("spec", {}).setdefault("template", {}).setdefault("spec", {}).setdefault("containers", [{"name": "mongod"}])
      if not containers:
        containers.append({"name": "mongod"})
      containers[0]["resources"] = profile.container_resources()
      await self._replace_operator_resource(names, resource)
      return

    try:
      workload = await self._call(f"read statefulset {names.resource}", self._apis.apps.read_namespaced_stateful_set(names.resource, names.namespace))
    except ResourceNotFoundError:
      if await self._operator_resource_exists(names):
        raise UnsupportedResizeError(f"Cannot move {cluster_id} off the operator-managed strategy") from None
      raise
    for container in workload.spec.template.spec.containers:
      container.resources = profile.container_resources()
    await self._call(f"replace statefulset {names.resource}", self._apis.apps.replace_namespaced_stateful_set(names.resource, names.namespace, workload))

  async def delete_mongo_cluster(self, cluster_id: str, project_id: str) -> None:
    names = self._names(cluster_id, project_id, False)
    namespace = names.namespace
    logger.info("Deleting cluster %s in %s", names.resource, namespace)

    await self._ignore_missing(f"delete {manifests.OPERATOR_KIND} {names.resource}", self._apis.custom.delete_namespaced_custom_object(*_CR, namespace, manifests.OPERATOR_PLURAL, names.resource))

    try:
      secrets = await self._call(f"list secrets of {names.resource}", self._apis.core.list_namespaced_secret(namespace, label_selector=f"{LABEL_CLUSTER}={names.resource}"))
    except ResourceNotFoundError:
      secrets = None
    for secret in getattr(secrets, "items", None) or []:
      await self._ignore_missing(f"delete secret {secret.metadata.name}", self._apis.core.delete_namespaced_secret(secret.metadata.name, namespace))

    await self._ignore_missing(f"delete network policy {names.network_policy}", self._apis.networking.delete_namespaced_network_policy(names.network_policy, namespace))
    await self._ignore_missing(f"delete statefulset {names.resource}", self._apis.apps.delete_namespaced_stateful_set(names.resource, namespace))
    await self._ignore_missing(f"delete service {names.resource}", self._apis.core.delete_namespaced_service(names.resource, namespace))
    await self._ignore_missing(f"delete service {names.external_service}", self._apis.core.delete_namespaced_service(names.external_service, namespace))

  async def pause_mongo_cluster(self, cluster_id: str, project_id: str, *, plan: str | None = None) -> None:
    names = await self._resolve_names(cluster_id, project_id, plan)
    logger.info("Pausing cluster %s", names.resource)
    await self._scale(names, 0)

  async def resume_mongo_cluster(self, cluster_id: str, project_id: str, plan: str) -> None:
    profile = get_profile(plan)
    names = self._names(cluster_id, project_id, profile.operator_managed)
    logger.info("Resuming cluster %s to %d members", names.resource, profile.replicas)
    await self._scale(names, profile.replicas)

  async def _scale(self, names: ClusterResourceNames, replicas: int) -> None:
    if names.operator_managed:
      # The operator owns the workload; its member count is the source of truth.
      resource = await self._get_operator_resource(names)
      resource.setdefault("spec", {})["members"] = replicas
      await self._replace_operator_resource(names, resource)
      return
    scale = await self._call(f"read scale {names.resource}", self._apis.apps.read_namespaced_stateful_set_scale(names.resource, names.namespace))
    scale.spec.replicas = replicas
    await self._call(f"replace scale {names.resource}", self._apis.apps.replace_namespaced_stateful_set_scale(names.resource, names.namespace, scale))

  # Database users

  async def _exec_mongosh(self, names: ClusterResourceNames, action: str, script: str) -> str:
    """Run a mongosh script in the first pod of a simple cluster and return its output."""
    if self._apis.pod_exec is None:
      raise UnsupportedOperationError(f"{action} on {names.resource} needs pod exec access")
    output = await self._call(
      f"{action} in pod {names.first_pod}",
      self._apis.pod_exec.connect_get_namespaced_pod_exec(
        names.first_pod, names.namespace, command=manifests.mongosh_command(script), container=manifests.MONGO_CONTAINER, stderr=True, stdin=False, stdout=True, tty=False
      ),
    )
    text = output if isinstance(output, str) else str(output or "")
    if manifests.EXEC_OK_MARKER not in text and manifests.EXEC_MISSING_MARKER not in text:
      raise OrchestrationError(f"{action} on {names.resource} failed: {text.strip()[:500] or 'no output'}")
    return text

  async def create_database_user(self, cluster_id: str, project_id: str, plan: str, user: DatabaseUserSpec) -> None:
    names = self._names(cluster_id, project_id, is_operator_managed(plan))
    roles = [{"role": role.role, "db": role.db} for role in user.roles]
    if not names.operator_managed:
      await self._exec_mongosh(names, f"create user {user.username}", manifests.create_user_script(user.username, user.password or "", roles))
      logger.info("Database user %s created on %s", user.username, names.resource)
      return

    secret_name = names.user_secret(user.username)
    labels = {**names.labels(cluster_id=cluster_id, project_id=project_id), "clusterops.io/user": user.username}
    await self.create_credentials_secret(names.namespace, secret_name, {"password": user.password or ""}, labels)

    resource = await self._get_operator_resource(names)
    users = [entry for entry in resource.setdefault("spec", {}).get("users") or [] if entry.get("name") != user.username]
    users.append(manifests.operator_user(user.username, secret_name, f"{names.resource}-{user.username}-scram", [{"name": role["role"], "db": role["db"]} for role in roles]))
    resource["spec"]["users"] = users
    await self._replace_operator_resource(names, resource)
    logger.info("Database user %s created on %s", user.username, names.resource)

  async def update_database_user(self, cluster_id: str, project_id: str, plan: str, user: DatabaseUserSpec) -> None:
    names = self._names(cluster_id, project_id, is_operator_managed(plan))
    roles = [{"role": role.role, "db": role.db} for role in user.roles]
    if not names.operator_managed:
      if not user.password and not roles:
        return
      output = await self._exec_mongosh(names, f"update user {user.username}", manifests.update_user_script(user.username, password=user.password, roles=roles))
      if manifests.EXEC_MISSING_MARKER in output:
        raise ResourceNotFoundError(f"Database user {user.username} not found on {names.resource}", status=404)
      return

    if user.password:
      labels = {**names.labels(cluster_id=cluster_id, project_id=project_id), "clusterops.io/user": user.username}
      await self.create_credentials_secret(names.namespace, names.user_secret(user.username), {"password": user.password}, labels)
    if not roles:
      return
    resource = await self._get_operator_resource(names)
    for entry in resource.setdefault("spec", {}).get("users") or []:
      if entry.get("name") == user.username:
        entry["roles"] = [{"name": role["role"], "db": role["db"]} for role in roles]
        break
    else:
      raise ResourceNotFoundError(f"Database user {user.username} not found on {names.resource}", status=404)
    await self._replace_operator_resource(names, resource)

  async def delete_database_user(self, cluster_id: str, project_id: str, plan: str, username: str) -> None:
    names = self._names(cluster_id, project_id, is_operator_managed(plan))
    if not names.operator_managed:
      await self._exec_mongosh(names, f"drop user {username}", manifests.drop_user_script(username))
      return

    resource = await self._get_operator_resource(names)
    spec = resource.setdefault("spec", {})
    spec["users"] = [entry for entry in spec.get("users") or [] if entry.get("name") != username]
    await self._replace_operator_resource(names, resource)
    await self._ignore_missing(f"delete secret {names.user_secret(username)}", self._apis.core.delete_namespaced_secret(names.user_secret(username), names.namespace))

  # Networking

  async def update_network_policy(self, cluster_id: str, project_id: str, allowed_cidrs: list[str]) -> None:
    names = await self._resolve_names(cluster_id, project_id, None)
    body = manifests.network_policy_body(names, allowed_cidrs)
    try:
      await self._call(f"replace network policy {names.network_policy}", self._apis.networking.replace_namespaced_network_policy(names.network_policy, names.namespace, body))
    except ResourceNotFoundError:
      await self._call(f"create network policy {names.network_policy}", self._apis.networking.create_namespaced_network_policy(names.namespace, body))
    logger.info("Network policy for %s allows %d CIDRs", names.resource, len(allowed_cidrs))

  async def enable_external_access(self, cluster_id: str, project_id: str, plan: str) -> ExternalEndpoint | None:
    names = self._names(cluster_id, project_id, is_operator_managed(plan))
    return await self._expose(names, names.labels(cluster_id=cluster_id, project_id=project_id, plan=get_profile(plan).tier))

  async def _expose(self, names: ClusterResourceNames, labels: dict[str, str]) -> ExternalEndpoint | None:
    await self._create_unless_exists(f"create service {names.external_service}", self._apis.core.create_namespaced_service(names.namespace, manifests.external_service_body(names, labels=labels)))
    service = await self._call(f"read service {names.external_service}", self._apis.core.read_namespaced_service(names.external_service, names.namespace))
    node_port = next((port.node_port for port in service.spec.ports or [] if port.node_port), None)
    if node_port is None:
      return None
    host = await self._node_address()
    if host is None:
      return None
    return ExternalEndpoint(host=host, port=node_port)

  async def _node_address(self) -> str | None:
    if self._settings.node_external_ip:
      return self._settings.node_external_ip
    nodes = await self._call("list nodes", self._apis.core.list_node())
    internal: str | None = None
    for node in nodes.items or []:
      for address in (node.status.addresses if node.status else None) or []:
        if address.type == "ExternalIP":
          return address.address
        if address.type == "InternalIP" and internal is None:
          internal = address.address
    return internal

  async def _ensure_backup_pvc(self, names: ClusterResourceNames) -> None:
    try:
      await self._call(f"read pvc {names.backup_pvc}", self._apis.core.read_namespaced_persistent_volume_claim(names.backup_pvc, names.namespace))
    except ResourceNotFoundError:
      body = manifests.backup_pvc_body(names, size=self._settings.backup_pvc_size, storage_class=self._settings.k8s_storage_class)
      await self._create_unless_exists(f"create pvc {names.backup_pvc}", self._apis.core.create_namespaced_persistent_volume_claim(names.namespace, body))

  # Status

  async def get_cluster_status(self, cluster_id: str, project_id: str) -> ClusterStatusSnapshot:
    names = self._names(cluster_id, project_id, True)
    try:
      resource = await self._get_operator_resource(names)
    except ResourceNotFoundError:
      pass
    except OrchestrationError as exc:
      logger.warning("Operator resource lookup failed for %s: %s", names.resource, exc)
    else:
      status = resource.get("status") or {}
      phase = status.get("phase") or "Unknown"
      return ClusterStatusSnapshot(phase=phase, ready=phase == "Running", replicas=(resource.get("spec") or {}).get("members") or 0, ready_replicas=status.get("currentStatefulSetReplicas") or 0, message=status.get("message"))

    try:
      workload = await self._call(f"read statefulset {names.resource}", self._apis.apps.read_namespaced_stateful_set(names.resource, names.namespace))
    except ResourceNotFoundError:
      return ClusterStatusSnapshot(phase="NotFound", ready=False, replicas=0, ready_replicas=0, message="No orchestration resources found for this cluster")
    except OrchestrationError as exc:
      logger.warning("StatefulSet lookup failed for %s: %s", names.resource, exc)
      return ClusterStatusSnapshot(phase="Unknown", ready=False, replicas=0, ready_replicas=0, message=f"Unable to query cluster status: {exc}")

    spec_replicas = (workload.spec.replicas if workload.spec else None) or 0
    ready_replicas = (workload.status.ready_replicas if workload.status else None) or 0
    ready = spec_replicas > 0 and ready_replicas >= spec_replicas
    phase = "Running" if ready else ("Pending" if ready_replicas > 0 else "Creating")
    message = "All pods are ready" if ready else f"{ready_replicas}/{spec_replicas} pods ready"
    return ClusterStatusSnapshot(phase=phase, ready=ready, replicas=spec_replicas, ready_replicas=ready_replicas, message=message)

  # Backups

  async def create_backup(self, cluster_id: str, project_id: str, backup_id: str, *, plan: str | None = None) -> BackupJobRef:
    names = await self._resolve_names(cluster_id, project_id, plan)
    await self._ensure_backup_pvc(names)
    job_name = batch_job_name("backup", backup_id)
    body = manifests.batch_job_body(names, job_name=job_name, kind="backup", command=manifests.dump_command(names, backup_id), image=self._settings.mongo_image, backup_id=backup_id)
    await self._call(f"create job {job_name}", self._apis.batch.create_namespaced_job(names.namespace, body))
    logger.info("Started backup job %s in %s", job_name, names.namespace)
    return BackupJobRef(namespace=names.namespace, job_name=job_name, archive_path=f"{manifests.BACKUP_MOUNT_PATH}/{backup_id}.gz")

  async def restore_backup(self, cluster_id: str, project_id: str, backup_id: str, *, plan: str | None = None, databases: list[str] | None = None, collections: list[str] | None = None) -> BackupJobRef:
    names = await self._resolve_names(cluster_id, project_id, plan)
    await self._ensure_backup_pvc(names)
    job_name = batch_job_name("restore", backup_id)
    command = manifests.restore_command(names, backup_id, databases=databases, collections=collections)
    body = manifests.batch_job_body(names, job_name=job_name, kind="restore", command=command, image=self._settings.mongo_image, backup_id=backup_id)
    await self._call(f"create job {job_name}", self._apis.batch.create_namespaced_job(names.namespace, body))
    logger.info("Started restore job %s in %s", job_name, names.namespace)
    return BackupJobRef(namespace=names.namespace, job_name=job_name, archive_path=f"{manifests.BACKUP_MOUNT_PATH}/{backup_id}.gz")

  # Metrics

  async def get_cluster_metrics(self, cluster_id: str, project_id: str) -> ClusterMetrics:
    names = self._names(cluster_id, project_id, False)
    try:
      pods = await self._call(f"read pod metrics in {names.namespace}", self._apis.custom.list_namespaced_custom_object("metrics.k8s.io", "v1beta1", names.namespace, "pods"))
      return aggregate_pod_metrics(pods.get("items") or [], names.resource)
    except (OrchestrationError, ValueError) as exc:
      logger.warning("Failed to read metrics for %s: %s", names.resource, exc)
      return ClusterMetrics()
