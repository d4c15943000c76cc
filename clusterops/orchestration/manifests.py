"""Manifest bodies sent to the orchestration API.

Bodies are plain dicts; the kubernetes client serializes them unchanged.
"""

from __future__ import annotations

import json
from typing import Any

from clusterops.orchestration.naming import LABEL_CLUSTER, LABEL_MANAGED_BY, MANAGED_BY, MONGO_PORT, ClusterResourceNames
from clusterops.orchestration.profiles import PlanResourceProfile

OPERATOR_GROUP = "mongodbcommunity.mongodb.com"
OPERATOR_VERSION = "v1"
OPERATOR_PLURAL = "mongodbcommunity"
OPERATOR_KIND = "MongoDBCommunity"

SERVICE_ACCOUNT_NAME = "mongodb-database"
ROLE_NAME = "mongodb-role"
ROLE_BINDING_NAME = "mongodb-binding"

ADMIN_ROLES = ("clusterAdmin", "userAdminAnyDatabase", "readWriteAnyDatabase", "dbAdminAnyDatabase")
BACKUP_MOUNT_PATH = "/backup"


def namespace_body(namespace: str, project_id: str) -> dict[str, Any]:
  return {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": namespace, "labels": {"name": namespace, LABEL_MANAGED_BY: MANAGED_BY, "clusterops.io/project-id": project_id}}}


def rbac_bodies(namespace: str) -> tuple[dict[str, Any], dict[str, Any], dict[str, Any]]:
  """Service account, role and binding the database operator needs inside a project namespace."""
  service_account = {"apiVersion": "v1", "kind": "ServiceAccount", "metadata": {"name": SERVICE_ACCOUNT_NAME, "namespace": namespace}}
  role = {
    "apiVersion": "rbac.authorization.k8s.io/v1",
    "kind": "Role",
    "metadata": {"name": ROLE_NAME, "namespace": namespace},
    "rules": [{"apiGroups": [""], "resources": ["secrets", "pods", "services", "configmaps"], "verbs": ["get", "list", "watch", "create", "update", "patch"]}],
  }
  binding = {
    "apiVersion": "rbac.authorization.k8s.io/v1",
    "kind": "RoleBinding",
    "metadata": {"name": ROLE_BINDING_NAME, "namespace": namespace},
    "subjects": [{"kind": "ServiceAccount", "name": SERVICE_ACCOUNT_NAME, "namespace": namespace}],
    "roleRef": {"kind": "Role", "name": ROLE_NAME, "apiGroup": "rbac.authorization.k8s.io"},
  }
  return service_account, role, binding


def secret_body(namespace: str, name: str, string_data: dict[str, str], labels: dict[str, str]) -> dict[str, Any]:
  return {"apiVersion": "v1", "kind": "Secret", "metadata": {"name": name, "namespace": namespace, "labels": labels}, "type": "Opaque", "stringData": string_data}


def _volume_claim(name: str, storage: str, storage_class: str) -> dict[str, Any]:
  return {"metadata": {"name": name}, "spec": {"accessModes": ["ReadWriteOnce"], "storageClassName": storage_class, "resources": {"requests": {"storage": storage}}}}


def operator_user(username: str, secret_name: str, scram_secret: str, roles: list[dict[str, str]]) -> dict[str, Any]:
  return {"name": username, "db": "admin", "passwordSecretRef": {"name": secret_name}, "roles": roles, "scramCredentialsSecretName": scram_secret}


def operator_resource_body(names: ClusterResourceNames, profile: PlanResourceProfile, *, labels: dict[str, str], username: str, mongo_version: str, storage_class: str) -> dict[str, Any]:
  """Replica-set custom resource owned by the database operator."""
  admin = operator_user(username, names.admin_secret, names.scram_secret, [{"name": role, "db": "admin"} for role in ADMIN_ROLES])
  return {
    "apiVersion": f"{OPERATOR_GROUP}/{OPERATOR_VERSION}",
    "kind": OPERATOR_KIND,
    "metadata": {"name": names.resource, "namespace": names.namespace, "labels": labels},
    "spec": {
      "members": profile.replicas,
      "type": "ReplicaSet",
      "version": mongo_version,
      "security": {"authentication": {"modes": ["SCRAM"]}},
      "users": [admin],
      "additionalMongodConfig": {"storage.wiredTiger.engineConfig.journalCompressor": "zlib", "net.maxIncomingConnections": 1000},
      "statefulSet": {
        "spec": {
          "template": {"spec": {"containers": [{"name": "mongod", "resources": profile.container_resources()}]}},
          "volumeClaimTemplates": [_volume_claim("data-volume", profile.storage, storage_class), _volume_claim("logs-volume", "1Gi", storage_class)],
        }
      },
    },
  }


def stateful_set_body(names: ClusterResourceNames, profile: PlanResourceProfile, *, labels: dict[str, str], image: str, storage_class: str) -> dict[str, Any]:
  """Single-node workload for tiers that run without the operator."""
  pod_labels = {"app": names.resource, **labels}
  return {
    "apiVersion": "apps/v1",
    "kind": "StatefulSet",
    "metadata": {"name": names.resource, "namespace": names.namespace, "labels": labels},
    "spec": {
      "serviceName": names.service,
      "replicas": 1,
      "selector": {"matchLabels": {"app": names.resource}},
      "template": {
        "metadata": {"labels": pod_labels},
        "spec": {
          "containers": [
            {
              "name": "mongodb",
              "image": image,
              "ports": [{"containerPort": MONGO_PORT, "name": "mongodb"}],
              "env": [
                {"name": "MONGO_INITDB_ROOT_USERNAME", "valueFrom": {"secretKeyRef": {"name": names.admin_secret, "key": "username"}}},
                {"name": "MONGO_INITDB_ROOT_PASSWORD", "valueFrom": {"secretKeyRef": {"name": names.admin_secret, "key": "password"}}},
              ],
              "resources": profile.container_resources(),
              "volumeMounts": [{"name": "data", "mountPath": "/data/db"}],
            }
          ]
        },
      },
      "volumeClaimTemplates": [_volume_claim("data", profile.storage, storage_class)],
    },
  }


def headless_service_body(names: ClusterResourceNames, *, labels: dict[str, str]) -> dict[str, Any]:
  return {
    "apiVersion": "v1",
    "kind": "Service",
    "metadata": {"name": names.service, "namespace": names.namespace, "labels": labels},
    "spec": {"clusterIP": "None", "selector": {"app": names.resource}, "ports": [{"port": MONGO_PORT, "targetPort": MONGO_PORT, "name": "mongodb"}]},
  }


def external_service_body(names: ClusterResourceNames, *, labels: dict[str, str]) -> dict[str, Any]:
  return {
    "apiVersion": "v1",
    "kind": "Service",
    "metadata": {"name": names.external_service, "namespace": names.namespace, "labels": labels},
    "spec": {"type": "NodePort", "selector": {"app": names.pod_selector_app}, "ports": [{"port": MONGO_PORT, "targetPort": MONGO_PORT, "protocol": "TCP", "name": "mongodb"}]},
  }


def network_policy_body(names: ClusterResourceNames, allowed_cidrs: list[str] | None = None) -> dict[str, Any]:
  """Ingress policy: same-namespace traffic plus one rule per CIDR, all on the database port."""
  port = [{"protocol": "TCP", "port": MONGO_PORT}]
  ingress: list[dict[str, Any]] = [{"from": [{"namespaceSelector": {"matchLabels": {"name": names.namespace}}}], "ports": port}]
  for cidr in allowed_cidrs or []:
    ingress.append({"from": [{"ipBlock": {"cidr": cidr}}], "ports": port})
  return {
    "apiVersion": "networking.k8s.io/v1",
    "kind": "NetworkPolicy",
    "metadata": {"name": names.network_policy, "namespace": names.namespace, "labels": {LABEL_MANAGED_BY: MANAGED_BY, LABEL_CLUSTER: names.resource}},
    "spec": {"podSelector": {"matchLabels": {"app": names.pod_selector_app}}, "policyTypes": ["Ingress"], "ingress": ingress},
  }


def backup_pvc_body(names: ClusterResourceNames, *, size: str, storage_class: str) -> dict[str, Any]:
  return {
    "apiVersion": "v1",
    "kind": "PersistentVolumeClaim",
    "metadata": {"name": names.backup_pvc, "namespace": names.namespace, "labels": {LABEL_MANAGED_BY: MANAGED_BY, LABEL_CLUSTER: names.resource}},
    "spec": {"accessModes": ["ReadWriteOnce"], "storageClassName": storage_class, "resources": {"requests": {"storage": size}}},
  }


def batch_job_body(names: ClusterResourceNames, *, job_name: str, kind: str, command: str, image: str, backup_id: str) -> dict[str, Any]:
  """One-shot dump or restore job mounting the cluster's backup volume."""
  return {
    "apiVersion": "batch/v1",
    "kind": "Job",
    "metadata": {"name": job_name, "namespace": names.namespace, "labels": {LABEL_MANAGED_BY: MANAGED_BY, LABEL_CLUSTER: names.resource, "clusterops.io/backup-id": backup_id, "clusterops.io/job-kind": kind}},
    "spec": {
      "backoffLimit": 2,
      "ttlSecondsAfterFinished": 3600,
      "template": {
        "spec": {
          "restartPolicy": "Never",
          "containers": [
            {
              "name": kind,
              "image": image,
              "command": ["/bin/sh", "-c", command],
              "env": [{"name": "MONGO_PASSWORD", "valueFrom": {"secretKeyRef": {"name": names.admin_secret, "key": "password"}}}],
              "volumeMounts": [{"name": "backup-storage", "mountPath": BACKUP_MOUNT_PATH}],
            }
          ],
          "volumes": [{"name": "backup-storage", "persistentVolumeClaim": {"claimName": names.backup_pvc}}],
        }
      },
    },
  }


def dump_command(names: ClusterResourceNames, backup_id: str, username: str = "admin") -> str:
  uri = f"mongodb://{username}:$MONGO_PASSWORD@{names.host}:{MONGO_PORT}/?authSource=admin"
  return f'mongodump --uri="{uri}" --archive={BACKUP_MOUNT_PATH}/{backup_id}.gz --gzip'


def restore_command(names: ClusterResourceNames, backup_id: str, *, databases: list[str] | None = None, collections: list[str] | None = None, username: str = "admin") -> str:
  uri = f"mongodb://{username}:$MONGO_PASSWORD@{names.host}:{MONGO_PORT}/?authSource=admin"
  command = f'mongorestore --uri="{uri}" --archive={BACKUP_MOUNT_PATH}/{backup_id}.gz --gzip --drop'
  for database in databases or []:
    command += f' --nsInclude="{database}.*"'
  for collection in collections or []:
    command += f' --nsInclude="{collection}"'
  return command


EXEC_OK_MARKER = "clusterops:ok"
EXEC_MISSING_MARKER = "clusterops:missing-user"
MONGO_CONTAINER = "mongodb"
# The script arrives as "$1", so the shell never parses user-supplied text.
_MONGOSH_EVAL = 'exec mongosh --quiet --username "$MONGO_INITDB_ROOT_USERNAME" --password "$MONGO_INITDB_ROOT_PASSWORD" --authenticationDatabase admin --eval "$1"'


def mongosh_command(script: str) -> list[str]:
  return ["/bin/sh", "-c", _MONGOSH_EVAL, "mongosh", script]


def _mongosh_roles(roles: list[dict[str, str]]) -> list[dict[str, str]]:
  return [{"role": role["role"], "db": role["db"]} for role in roles]


def create_user_script(username: str, password: str, roles: list[dict[str, str]]) -> str:
  user = {"user": username, "pwd": password, "roles": _mongosh_roles(roles)}
  return f'db.getSiblingDB("admin").createUser({json.dumps(user)}); print({json.dumps(EXEC_OK_MARKER)});'


def update_user_script(username: str, *, password: str | None = None, roles: list[dict[str, str]] | None = None) -> str:
  changes: dict[str, Any] = {}
  if password:
    changes["pwd"] = password
  if roles:
    changes["roles"] = _mongosh_roles(roles)
  name = json.dumps(username)
  return (
    f'const admin = db.getSiblingDB("admin"); '
    f"if (admin.getUser({name}) === null) {{ print({json.dumps(EXEC_MISSING_MARKER)}); }} "
    f"else {{ admin.updateUser({name}, {json.dumps(changes)}); print({json.dumps(EXEC_OK_MARKER)}); }}"
  )


def drop_user_script(username: str) -> str:
  name = json.dumps(username)
  return f'const admin = db.getSiblingDB("admin"); if (admin.getUser({name}) !== null) {{ admin.dropUser({name}); }} print({json.dumps(EXEC_OK_MARKER)});'
