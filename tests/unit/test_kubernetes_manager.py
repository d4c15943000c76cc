from __future__ import annotations

import json
from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import AsyncMock

import aiohttp
import pytest
from kubernetes_asyncio.client.exceptions import ApiException

from clusterops.orchestration.errors import OrchestrationError, ResourceNotFoundError, TransientOrchestrationError, UnsupportedOperationError, UnsupportedResizeError
from clusterops.orchestration.kubernetes import KubernetesApis, KubernetesResourceManager
from clusterops.orchestration.manager import ClusterSpec, DatabaseRole, DatabaseUserSpec
from clusterops.orchestration.profiles import get_profile

NAMESPACE = "clusterops-p1"


def _not_found() -> ApiException:
  return ApiException(status=404, reason="Not Found")


def _conflict() -> ApiException:
  return ApiException(status=409, reason="Conflict")


def _operator_resource(members: int = 1, users: list | None = None) -> dict:
  return {
    "metadata": {"name": "mongo-c1", "resourceVersion": "41", "labels": {"clusterops.io/plan": "MEDIUM"}},
    "spec": {"members": members, "users": users or [], "statefulSet": {"spec": {"template": {"spec": {"containers": [{"name": "mongod", "resources": get_profile("MEDIUM").container_resources()}]}}}}},
    "status": {"phase": "Running", "currentStatefulSetReplicas": members},
  }


@pytest.fixture
def apis() -> KubernetesApis:
  pod_exec = AsyncMock()
  pod_exec.connect_get_namespaced_pod_exec.return_value = "clusterops:ok\n"
  return KubernetesApis(core=AsyncMock(), apps=AsyncMock(), networking=AsyncMock(), custom=AsyncMock(), rbac=AsyncMock(), batch=AsyncMock(), pod_exec=pod_exec)


@pytest.fixture
def manager(apis, settings) -> KubernetesResourceManager:
  return KubernetesResourceManager(apis, replace(settings, node_external_ip="203.0.113.10"))


def _replaced_resource(apis: KubernetesApis) -> dict:
  return apis.custom.replace_namespaced_custom_object.await_args.args[5]


@pytest.mark.anyio
async def test_ensure_namespace_is_idempotent(manager, apis) -> None:
  assert await manager.ensure_namespace("p1") == NAMESPACE

  apis.core.read_namespace.assert_awaited_once_with(NAMESPACE)
  apis.core.create_namespace.assert_not_called()
  apis.rbac.create_namespaced_role.assert_not_called()


@pytest.mark.anyio
async def test_ensure_namespace_creates_and_bootstraps_rbac(manager, apis) -> None:
  apis.core.read_namespace.side_effect = _not_found()
  apis.rbac.create_namespaced_role_binding.side_effect = ApiException(status=403, reason="Forbidden")

  assert await manager.ensure_namespace("p1") == NAMESPACE

  apis.core.create_namespace.assert_awaited_once()
  apis.core.create_namespaced_service_account.assert_awaited_once()
  apis.rbac.create_namespaced_role.assert_awaited_once()
  apis.rbac.create_namespaced_role_binding.assert_awaited_once()


@pytest.mark.anyio
async def test_ensure_namespace_tolerates_concurrent_creation(manager, apis) -> None:
  apis.core.read_namespace.side_effect = _not_found()
  apis.core.create_namespace.side_effect = _conflict()

  assert await manager.ensure_namespace("p1") == NAMESPACE
  apis.rbac.create_namespaced_role.assert_not_called()


@pytest.mark.anyio
async def test_transport_errors_are_transient(manager, apis) -> None:
  apis.core.read_namespace.side_effect = aiohttp.ClientConnectionError("refused")

  with pytest.raises(TransientOrchestrationError):
    await manager.ensure_namespace("p1")


@pytest.mark.anyio
async def test_create_simple_cluster(manager, apis) -> None:
  apis.core.read_namespaced_secret.side_effect = _not_found()
  apis.core.read_namespaced_service.return_value = SimpleNamespace(spec=SimpleNamespace(ports=[SimpleNamespace(node_port=30017)]))

  connection = await manager.create_mongo_cluster(ClusterSpec(cluster_id="c1", project_id="p1", plan="DEV", password="pw"))

  apis.core.create_namespaced_secret.assert_awaited_once()
  workload = apis.apps.create_namespaced_stateful_set.await_args.args[1]
  assert workload["spec"]["replicas"] == 1
  apis.custom.create_namespaced_custom_object.assert_not_called()
  apis.networking.create_namespaced_network_policy.assert_awaited_once()
  assert connection.host == f"mongo-c1.{NAMESPACE}.svc.cluster.local"
  assert connection.port == 27017
  assert connection.replica_set is None
  assert (connection.external_host, connection.external_port) == ("203.0.113.10", 30017)


@pytest.mark.anyio
async def test_create_operator_cluster(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.side_effect = _not_found()
  apis.core.read_namespaced_service.return_value = SimpleNamespace(spec=SimpleNamespace(ports=[]))

  connection = await manager.create_mongo_cluster(ClusterSpec(cluster_id="c1", project_id="p1", plan="LARGE", password="pw"))

  body = apis.custom.create_namespaced_custom_object.await_args.args[4]
  assert body["spec"]["members"] == 3
  apis.apps.create_namespaced_stateful_set.assert_not_called()
  assert connection.replica_set == "mongo-c1"
  assert connection.host == f"mongo-c1-svc.{NAMESPACE}.svc.cluster.local"
  assert connection.external_host is None


@pytest.mark.anyio
async def test_resize_operator_cluster_updates_members_and_resources(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.return_value = _operator_resource()

  await manager.resize_mongo_cluster("c1", "p1", "LARGE", current_plan="MEDIUM")

  resource = _replaced_resource(apis)
  assert resource["spec"]["members"] == 3
  containers = resource["spec"]["statefulSet"]["spec"]["template"]["spec"]["containers"]
  assert containers[0]["resources"] == {"requests": {"cpu": "250m", "memory": "1Gi"}, "limits": {"cpu": "1000m", "memory": "2Gi"}}
  assert resource["metadata"]["labels"]["clusterops.io/plan"] == "LARGE"


@pytest.mark.anyio
async def test_resize_simple_cluster_replaces_container_resources(manager, apis) -> None:
  container = SimpleNamespace(name="mongod", resources=None)
  workload = SimpleNamespace(spec=SimpleNamespace(template=SimpleNamespace(spec=SimpleNamespace(containers=[container]))))
  apis.apps.read_namespaced_stateful_set.return_value = workload

  await manager.resize_mongo_cluster("c1", "p1", "SMALL", current_plan="DEV")

  assert container.resources == get_profile("SMALL").container_resources()
  apis.apps.replace_namespaced_stateful_set.assert_awaited_once_with("mongo-c1", NAMESPACE, workload)


@pytest.mark.anyio
async def test_resize_across_strategies_is_rejected(manager, apis) -> None:
  with pytest.raises(UnsupportedResizeError):
    await manager.resize_mongo_cluster("c1", "p1", "LARGE", current_plan="DEV")
  apis.custom.replace_namespaced_custom_object.assert_not_called()


@pytest.mark.anyio
async def test_resize_detects_strategy_mismatch_without_current_plan(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.side_effect = _not_found()

  with pytest.raises(UnsupportedResizeError):
    await manager.resize_mongo_cluster("c1", "p1", "LARGE")


@pytest.mark.anyio
async def test_resize_missing_cluster_raises_not_found(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.side_effect = _not_found()
  apis.apps.read_namespaced_stateful_set.side_effect = _not_found()

  with pytest.raises(ResourceNotFoundError):
    await manager.resize_mongo_cluster("c1", "p1", "LARGE")


@pytest.mark.anyio
async def test_delete_tolerates_missing_resources(manager, apis) -> None:
  for api, method in ((apis.custom, "delete_namespaced_custom_object"), (apis.core, "list_namespaced_secret"), (apis.networking, "delete_namespaced_network_policy"), (apis.apps, "delete_namespaced_stateful_set"), (apis.core, "delete_namespaced_service")):
    getattr(api, method).side_effect = _not_found()

  await manager.delete_mongo_cluster("c1", "p1")

  assert apis.core.delete_namespaced_service.await_count == 2
  apis.core.delete_namespaced_secret.assert_not_called()


@pytest.mark.anyio
async def test_delete_removes_labelled_secrets(manager, apis) -> None:
  apis.core.list_namespaced_secret.return_value = SimpleNamespace(items=[SimpleNamespace(metadata=SimpleNamespace(name="mongo-c1-admin-password"))])

  await manager.delete_mongo_cluster("c1", "p1")

  apis.core.list_namespaced_secret.assert_awaited_once_with(NAMESPACE, label_selector="clusterops.io/cluster=mongo-c1")
  apis.core.delete_namespaced_secret.assert_awaited_once_with("mongo-c1-admin-password", NAMESPACE)


@pytest.mark.anyio
async def test_pause_simple_cluster_scales_to_zero(manager, apis) -> None:
  scale = SimpleNamespace(spec=SimpleNamespace(replicas=1))
  apis.apps.read_namespaced_stateful_set_scale.return_value = scale

  await manager.pause_mongo_cluster("c1", "p1", plan="DEV")

  assert scale.spec.replicas == 0
  apis.apps.replace_namespaced_stateful_set_scale.assert_awaited_once_with("mongo-c1", NAMESPACE, scale)


@pytest.mark.anyio
async def test_pause_without_plan_detects_operator_resource(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.return_value = _operator_resource(members=3)

  await manager.pause_mongo_cluster("c1", "p1")

  assert _replaced_resource(apis)["spec"]["members"] == 0
  apis.apps.read_namespaced_stateful_set_scale.assert_not_called()


@pytest.mark.anyio
async def test_resume_operator_cluster_restores_member_count(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.return_value = _operator_resource(members=0)

  await manager.resume_mongo_cluster("c1", "p1", "LARGE")

  assert _replaced_resource(apis)["spec"]["members"] == 3


@pytest.mark.anyio
async def test_network_policy_is_created_when_absent(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.side_effect = _not_found()
  apis.networking.replace_namespaced_network_policy.side_effect = _not_found()

  await manager.update_network_policy("c1", "p1", ["10.0.0.0/8", "192.168.1.0/24"])

  body = apis.networking.create_namespaced_network_policy.await_args.args[1]
  cidrs = [rule["from"][0]["ipBlock"]["cidr"] for rule in body["spec"]["ingress"] if "ipBlock" in rule["from"][0]]
  assert cidrs == ["10.0.0.0/8", "192.168.1.0/24"]
  assert body["spec"]["podSelector"] == {"matchLabels": {"app": "mongo-c1"}}


def _exec_call(apis: KubernetesApis):
  call = apis.pod_exec.connect_get_namespaced_pod_exec.await_args
  return call.args, call.kwargs


@pytest.mark.anyio
async def test_create_database_user_on_simple_cluster_runs_mongosh_in_first_pod(manager, apis) -> None:
  password = "pw'\"; $(rm -rf /) `x`"
  user = DatabaseUserSpec(username="reporting", password=password, roles=(DatabaseRole(role="read", db="orders"),))

  await manager.create_database_user("c1", "p1", "DEV", user)

  args, kwargs = _exec_call(apis)
  assert args == ("mongo-c1-0", NAMESPACE)
  assert kwargs["container"] == "mongodb"
  assert kwargs["stdout"] is True and kwargs["stdin"] is False and kwargs["tty"] is False
  command = kwargs["command"]
  assert command[:2] == ["/bin/sh", "-c"]
  assert '--eval "$1"' in command[2]
  script = command[4]
  assert 'createUser({"user": "reporting", "pwd": ' + json.dumps(password) in script
  assert '"roles": [{"role": "read", "db": "orders"}]' in script
  # The password only ever travels as an argument, never inside the shell program.
  assert password not in command[2]
  apis.core.create_namespaced_secret.assert_not_called()
  apis.custom.replace_namespaced_custom_object.assert_not_called()


@pytest.mark.anyio
async def test_update_and_delete_database_user_on_simple_cluster(manager, apis) -> None:
  await manager.update_database_user("c1", "p1", "SMALL", DatabaseUserSpec(username="reporting", password="new-secret-1"))
  script = _exec_call(apis)[1]["command"][4]
  assert 'admin.updateUser("reporting", {"pwd": "new-secret-1"})' in script

  await manager.delete_database_user("c1", "p1", "SMALL", "reporting")
  script = _exec_call(apis)[1]["command"][4]
  assert 'admin.dropUser("reporting")' in script
  apis.core.delete_namespaced_secret.assert_not_called()


@pytest.mark.anyio
async def test_update_missing_user_on_simple_cluster_is_not_found(manager, apis) -> None:
  apis.pod_exec.connect_get_namespaced_pod_exec.return_value = "clusterops:missing-user\n"

  with pytest.raises(ResourceNotFoundError):
    await manager.update_database_user("c1", "p1", "DEV", DatabaseUserSpec(username="ghost", roles=(DatabaseRole(role="read", db="orders"),)))


@pytest.mark.anyio
async def test_mongosh_failure_surfaces_output(manager, apis) -> None:
  apis.pod_exec.connect_get_namespaced_pod_exec.return_value = "MongoServerError: User \"reporting@admin\" already exists"

  with pytest.raises(OrchestrationError, match="already exists"):
    await manager.create_database_user("c1", "p1", "DEV", DatabaseUserSpec(username="reporting", password="pw-123456"))


@pytest.mark.anyio
async def test_simple_cluster_users_need_pod_exec(settings) -> None:
  apis = KubernetesApis(core=AsyncMock(), apps=AsyncMock(), networking=AsyncMock(), custom=AsyncMock(), rbac=AsyncMock(), batch=AsyncMock())
  manager = KubernetesResourceManager(apis, settings)

  with pytest.raises(UnsupportedOperationError):
    await manager.delete_database_user("c1", "p1", "SMALL", "reporting")


@pytest.mark.anyio
async def test_create_database_user_on_operator_cluster(manager, apis) -> None:
  apis.core.read_namespaced_secret.side_effect = _not_found()
  apis.custom.get_namespaced_custom_object.return_value = _operator_resource(users=[{"name": "reporting", "roles": []}])
  user = DatabaseUserSpec(username="reporting", password="pw-123456", roles=(DatabaseRole(role="read", db="orders"),))

  await manager.create_database_user("c1", "p1", "LARGE", user)

  users = _replaced_resource(apis)["spec"]["users"]
  assert len(users) == 1
  assert users[0]["name"] == "reporting"
  assert users[0]["roles"] == [{"name": "read", "db": "orders"}]


@pytest.mark.anyio
async def test_status_without_any_resource_is_not_found(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.side_effect = _not_found()
  apis.apps.read_namespaced_stateful_set.side_effect = _not_found()

  snapshot = await manager.get_cluster_status("c1", "p1")

  assert snapshot.phase == "NotFound"
  assert snapshot.ready is False


@pytest.mark.anyio
async def test_status_reads_operator_phase(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.return_value = _operator_resource(members=3)

  snapshot = await manager.get_cluster_status("c1", "p1")

  assert snapshot.phase == "Running"
  assert snapshot.ready is True
  assert (snapshot.replicas, snapshot.ready_replicas) == (3, 3)


@pytest.mark.anyio
async def test_status_derives_phase_from_stateful_set(manager, apis) -> None:
  apis.custom.get_namespaced_custom_object.side_effect = _not_found()
  apis.apps.read_namespaced_stateful_set.return_value = SimpleNamespace(spec=SimpleNamespace(replicas=1), status=SimpleNamespace(ready_replicas=0))

  snapshot = await manager.get_cluster_status("c1", "p1")

  assert snapshot.phase == "Creating"
  assert snapshot.ready is False
  assert snapshot.message == "0/1 pods ready"


@pytest.mark.anyio
async def test_backup_creates_batch_job(manager, apis) -> None:
  ref = await manager.create_backup("c1", "p1", "b1", plan="DEV")

  assert ref.job_name == "backup-b1"
  assert ref.namespace == NAMESPACE
  apis.batch.create_namespaced_job.assert_awaited_once()
  apis.core.create_namespaced_persistent_volume_claim.assert_not_called()


@pytest.mark.anyio
async def test_metrics_failure_returns_zeroes(manager, apis) -> None:
  apis.custom.list_namespaced_custom_object.side_effect = ApiException(status=503, reason="Unavailable")

  metrics = await manager.get_cluster_metrics("c1", "p1")

  assert metrics.as_dict() == {"cpu": 0.0, "memory": 0.0, "storage": 0.0, "connections": 0}
