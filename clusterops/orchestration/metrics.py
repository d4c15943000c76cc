"""Parsing of metrics-server resource quantities."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from clusterops.orchestration.manager import ClusterMetrics

_CPU_SUFFIXES = {"n": 1e-9, "u": 1e-6, "m": 1e-3}
_MEMORY_SUFFIXES_MB = {"Ki": 1 / 1024, "Mi": 1.0, "Gi": 1024.0, "Ti": 1024.0 * 1024}


def parse_cpu_cores(quantity: str | None) -> float:
  """Convert a CPU quantity such as '250m' or '12000000n' into cores."""
  if not quantity:
    return 0.0
  suffix = quantity[-1]
  if suffix in _CPU_SUFFIXES:
    return float(quantity[:-1]) * _CPU_SUFFIXES[suffix]
  return float(quantity)


def parse_memory_mb(quantity: str | None) -> float:
  """Convert a memory quantity such as '512Mi' or '2048Ki' into MB."""
  if not quantity:
    return 0.0
  suffix = quantity[-2:]
  if suffix in _MEMORY_SUFFIXES_MB:
    return float(quantity[:-2]) * _MEMORY_SUFFIXES_MB[suffix]
  # Plain bytes.
  return float(quantity) / (1024 * 1024)


def aggregate_pod_metrics(pods: Iterable[dict[str, Any]], name_prefix: str) -> ClusterMetrics:
  """Sum container usage of every pod whose name starts with the resource name.

  CPU is reported as a percentage of one core, memory in MB. Storage and
  connection counts are not available from the metrics API and stay zero.
  """
  total_cpu = 0.0
  total_memory = 0.0
  for pod in pods:
    name = (pod.get("metadata") or {}).get("name") or ""
    if not name.startswith(name_prefix):
      continue
    for container in pod.get("containers") or []:
      usage = container.get("usage") or {}
      total_cpu += parse_cpu_cores(usage.get("cpu"))
      total_memory += parse_memory_mb(usage.get("memory"))
  return ClusterMetrics(cpu=total_cpu * 100, memory=total_memory, storage=0.0, connections=0)
