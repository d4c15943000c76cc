"""Deterministic names for a cluster's orchestration resources."""

from __future__ import annotations

from dataclasses import dataclass

MONGO_PORT = 27017
CLUSTER_DOMAIN = "svc.cluster.local"
MANAGED_BY = "clusterops"
LABEL_CLUSTER = "clusterops.io/cluster"
LABEL_CLUSTER_ID = "clusterops.io/cluster-id"
LABEL_PROJECT_ID = "clusterops.io/project-id"
LABEL_PLAN = "clusterops.io/plan"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"

JOB_NAME_MAX_LENGTH = 63


def namespace_name(prefix: str, project_id: str) -> str:
  return f"{prefix}{project_id}".lower()


def resource_name(cluster_id: str) -> str:
  return f"mongo-{cluster_id}".lower()


def batch_job_name(kind: str, backup_id: str) -> str:
  return f"{kind}-{backup_id}"[:JOB_NAME_MAX_LENGTH].lower()


@dataclass(frozen=True)
class ClusterResourceNames:
  """Names derived from a cluster and project id; never persisted."""

  namespace: str
  resource: str
  operator_managed: bool

  @classmethod
  def for_cluster(cls, *, prefix: str, project_id: str, cluster_id: str, operator_managed: bool) -> ClusterResourceNames:
    return cls(namespace=namespace_name(prefix, project_id), resource=resource_name(cluster_id), operator_managed=operator_managed)

  @property
  def service(self) -> str:
    # The operator names its headless service <resource>-svc.
    return f"{self.resource}-svc" if self.operator_managed else self.resource

  @property
  def admin_secret(self) -> str:
    return f"{self.resource}-admin-password"

  @property
  def scram_secret(self) -> str:
    return f"{self.resource}-scram"

  @property
  def network_policy(self) -> str:
    return f"{self.resource}-network-policy"

  @property
  def backup_pvc(self) -> str:
    return f"{self.resource}-backups"

  @property
  def external_service(self) -> str:
    return f"{self.resource}-external"

  @property
  def pod_selector_app(self) -> str:
    return self.service if self.operator_managed else self.resource

  @property
  def first_pod(self) -> str:
    return f"{self.resource}-0"

  @property
  def host(self) -> str:
    return f"{self.service}.{self.namespace}.{CLUSTER_DOMAIN}"

  def user_secret(self, username: str) -> str:
    return f"{self.resource}-user-{username}".lower()

  def labels(self, *, cluster_id: str, project_id: str, plan: str | None = None) -> dict[str, str]:
    labels = {LABEL_MANAGED_BY: MANAGED_BY, LABEL_CLUSTER: self.resource, LABEL_CLUSTER_ID: cluster_id, LABEL_PROJECT_ID: project_id}
    if plan:
      labels[LABEL_PLAN] = plan
    return labels
