"""Wiring of repositories, resource manager, job engine and services for one process."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clusterops.config import Settings
from clusterops.jobs.collaborators import ClusterNotifier
from clusterops.jobs.handlers import ClusterOperationHandlers
from clusterops.jobs.processor import JobProcessor
from clusterops.notifications.factory import build_notification_service
from clusterops.orchestration.manager import ResourceManager
from clusterops.services.clusters import ClusterAccessService
from clusterops.services.jobs import JobService
from clusterops.storage.sql_backups_repo import SqlBackupsRepository
from clusterops.storage.sql_clusters_repo import SqlClustersRepository
from clusterops.storage.sql_directory_repo import SqlDirectoryRepository
from clusterops.storage.sql_events_repo import SqlEventsRepository
from clusterops.storage.sql_jobs_repo import SqlJobsRepository


@dataclass
class ServiceContainer:
  settings: Settings
  resources: ResourceManager
  jobs: JobService
  clusters: ClusterAccessService
  processor: JobProcessor


def build_container(settings: Settings, resources: ResourceManager, *, session_factory: async_sessionmaker[AsyncSession] | None = None, notifier: ClusterNotifier | None = None) -> ServiceContainer:
  """Build the process-wide object graph on top of one resource manager."""
  jobs_repo = SqlJobsRepository(session_factory)
  clusters_repo = SqlClustersRepository(session_factory)
  events_repo = SqlEventsRepository(session_factory)
  backups_repo = SqlBackupsRepository(session_factory, events=events_repo)
  directory_repo = SqlDirectoryRepository(session_factory)

  handlers = ClusterOperationHandlers(
    resources=resources, clusters=clusters_repo, events=events_repo, backups=backups_repo, notifier=notifier or build_notification_service(settings), directory=directory_repo
  )
  processor = JobProcessor(jobs_repo=jobs_repo, registry=handlers.build_registry(), clusters=clusters_repo, events=events_repo, settings=settings)
  return ServiceContainer(
    settings=settings,
    resources=resources,
    jobs=JobService(jobs_repo=jobs_repo, default_max_attempts=settings.jobs_max_attempts),
    clusters=ClusterAccessService(resources=resources, clusters=clusters_repo, events=events_repo),
    processor=processor,
  )
