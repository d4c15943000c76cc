from __future__ import annotations

import random

import pytest

from clusterops.orchestration.naming import ClusterResourceNames, batch_job_name, namespace_name, resource_name


@pytest.mark.parametrize(
  ("prefix", "project_id", "expected"),
  [("clusterops-", "abc123", "clusterops-abc123"), ("clusterops-", "ProjECT-9", "clusterops-project-9"), ("Tenant-", "ÄBC", "tenant-äbc"), ("", "", "")],
)
def test_namespace_name_is_lowercased_concatenation(prefix: str, project_id: str, expected: str) -> None:
  assert namespace_name(prefix, project_id) == expected


@pytest.mark.parametrize(("cluster_id", "expected"), [("C1", "mongo-c1"), ("a-b", "mongo-a-b"), ("ÉCOLE", "mongo-école")])
def test_resource_name(cluster_id: str, expected: str) -> None:
  assert resource_name(cluster_id) == expected


_ID_ALPHABET = "abcXYZ019-_" + "ÄÖÜßéÉçÇøØ" + "ΣσДдİ"


def _random_id(rng: random.Random) -> str:
  return "".join(rng.choice(_ID_ALPHABET) for _ in range(rng.randint(0, 24)))


def test_names_are_lowercased_concatenations_for_random_ids() -> None:
  rng = random.Random(20240611)
  for _ in range(500):
    prefix = rng.choice(["clusterops-", "Tenant-", "", "ÉQUIPE-"])
    project_id = _random_id(rng)
    cluster_id = _random_id(rng)

    assert namespace_name(prefix, project_id) == (prefix + project_id).lower()
    assert resource_name(cluster_id) == ("mongo-" + cluster_id).lower()


def test_names_are_deterministic() -> None:
  first = ClusterResourceNames.for_cluster(prefix="clusterops-", project_id="P1", cluster_id="C1", operator_managed=False)
  second = ClusterResourceNames.for_cluster(prefix="clusterops-", project_id="P1", cluster_id="C1", operator_managed=False)
  assert first == second


def test_simple_and_operator_service_names() -> None:
  simple = ClusterResourceNames.for_cluster(prefix="clusterops-", project_id="p1", cluster_id="c1", operator_managed=False)
  operator = ClusterResourceNames.for_cluster(prefix="clusterops-", project_id="p1", cluster_id="c1", operator_managed=True)

  assert simple.service == "mongo-c1"
  assert operator.service == "mongo-c1-svc"
  assert operator.host == "mongo-c1-svc.clusterops-p1.svc.cluster.local"
  assert simple.admin_secret == "mongo-c1-admin-password"
  assert simple.network_policy == "mongo-c1-network-policy"
  assert simple.backup_pvc == "mongo-c1-backups"
  assert simple.external_service == "mongo-c1-external"
  assert operator.user_secret("Reporter") == "mongo-c1-user-reporter"
  assert simple.first_pod == "mongo-c1-0"


def test_labels_include_plan_only_when_given() -> None:
  names = ClusterResourceNames.for_cluster(prefix="clusterops-", project_id="p1", cluster_id="c1", operator_managed=False)

  labels = names.labels(cluster_id="c1", project_id="p1")
  assert labels["app.kubernetes.io/managed-by"] == "clusterops"
  assert labels["clusterops.io/cluster"] == "mongo-c1"
  assert "clusterops.io/plan" not in labels
  assert names.labels(cluster_id="c1", project_id="p1", plan="DEV")["clusterops.io/plan"] == "DEV"


def test_batch_job_name_is_truncated() -> None:
  name = batch_job_name("backup", "B" * 80)
  assert len(name) == 63
  assert name.startswith("backup-bbb")
