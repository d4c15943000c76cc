"""Shared FastAPI dependencies for internal auth and service access."""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, Header, HTTPException, Request, status

from clusterops.config import Settings, get_settings
from clusterops.core.container import ServiceContainer

logger = logging.getLogger(__name__)


async def require_internal_token(settings: Settings = Depends(get_settings), authorization: str | None = Header(default=None)) -> None:  # noqa: B008
  """Only callers holding the internal API token may drive cluster operations."""
  # Secure-by-default: without a configured token every /v1 call is refused.
  if not settings.internal_api_token:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Internal API authentication is not configured.")
  expected_auth = f"Bearer {settings.internal_api_token}"
  if not secrets.compare_digest((authorization or ""), expected_auth):
    logger.warning("Unauthorized access attempt to internal API")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid internal API token.")


def get_container(request: Request) -> ServiceContainer:
  container: ServiceContainer | None = getattr(request.app.state, "container", None)
  if container is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is starting up.")
  return container
