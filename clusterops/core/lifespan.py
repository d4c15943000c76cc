import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from clusterops.core.container import build_container
from clusterops.core.database import create_schema, dispose_engine
from clusterops.core.logging import initialize_logging
from clusterops.orchestration.factory import select_resource_manager


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Initialise logging, storage and orchestration, then run the job processor for the app's lifetime."""
  from clusterops.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("clusterops.core.lifespan")

  initialize_logging(settings)
  logger.info("Starting clusterops environment=%s database=%s", settings.environment, _redact_dsn(settings.pg_dsn))

  if settings.auto_create_schema:
    try:
      await create_schema()
      logger.info("Database schema ensured.")
    except Exception:  # noqa: BLE001
      logger.warning("Failed to create database schema at startup; run migrations instead.", exc_info=True)

  resources = await select_resource_manager(settings)
  container = build_container(settings, resources)
  app.state.container = container
  app.state.orchestration_mode = resources.mode

  if settings.jobs_auto_process:
    container.processor.start()
  else:
    logger.info("Automatic job processing disabled.")

  try:
    yield
  finally:
    await container.processor.stop()
    await resources.close()
    await dispose_engine()
    app.state.container = None
    logger.info("Shutdown complete.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<sqlite>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
