"""Startup selection of the resource manager strategy."""

from __future__ import annotations

import asyncio
import logging

import aiohttp
from kubernetes_asyncio import client, config
from kubernetes_asyncio.client.exceptions import ApiException

from clusterops.config import Settings
from clusterops.orchestration.kubernetes import KubernetesApis, KubernetesResourceManager
from clusterops.orchestration.manager import ResourceManager
from clusterops.orchestration.simulated import SimulatedResourceManager

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 10


async def _load_client_configuration(settings: Settings) -> None:
  if settings.k8s_in_cluster:
    config.load_incluster_config()
  else:
    await config.load_kube_config(config_file=settings.k8s_kubeconfig)


async def select_resource_manager(settings: Settings) -> ResourceManager:
  """Pick the live manager when the platform answers a probe, otherwise the simulated one."""
  if settings.k8s_simulate:
    logger.info("Orchestration mode: simulated (forced by configuration)")
    return SimulatedResourceManager(settings)

  try:
    await _load_client_configuration(settings)
  except (config.ConfigException, OSError) as exc:
    logger.warning("Orchestration credentials unavailable, using simulated mode: %s", exc)
    return SimulatedResourceManager(settings)

  api_client = client.ApiClient()
  apis = KubernetesApis.from_api_client(api_client)
  try:
    await asyncio.wait_for(apis.core.list_namespace(limit=1), timeout=PROBE_TIMEOUT_SECONDS)
  except (ApiException, aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
    logger.warning("Orchestration connectivity probe failed, using simulated mode: %s", exc)
    await apis.close()
    return SimulatedResourceManager(settings)

  logger.info("Orchestration mode: live")
  return KubernetesResourceManager(apis, settings)
