"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from clusterops.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

DEFAULT_SQLITE_DSN = "sqlite+aiosqlite:///./clusterops.db"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the cluster operations service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  pg_dsn: str | None
  pg_connect_timeout: int
  auto_create_schema: bool
  k8s_namespace_prefix: str
  k8s_in_cluster: bool
  k8s_kubeconfig: str | None
  k8s_simulate: bool
  k8s_storage_class: str
  mongo_image: str
  mongo_version: str
  backup_pvc_size: str
  node_external_ip: str | None
  simulated_delay_scale: float
  jobs_auto_process: bool
  jobs_poll_interval_seconds: float
  jobs_batch_size: int
  jobs_max_attempts: int
  internal_api_token: str | None
  email_notifications_enabled: bool
  email_from_address: str | None
  email_from_name: str | None
  mailersend_api_key: str | None
  mailersend_timeout_seconds: int
  mailersend_base_url: str


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:3000",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if "*" in origins:
    raise ValueError("CLUSTEROPS_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _database_dsn() -> str | None:
  return os.getenv("CLUSTEROPS_PG_DSN") or os.getenv("DATABASE_URL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("CLUSTEROPS_ENV", "development").lower()
  debug = _parse_bool(os.getenv("CLUSTEROPS_DEBUG"))

  log_max_bytes = _positive_int("CLUSTEROPS_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("CLUSTEROPS_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("CLUSTEROPS_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Dev databases are created from metadata; production relies on alembic.
  auto_create_schema = _parse_bool(os.getenv("CLUSTEROPS_AUTO_CREATE_SCHEMA"), default=environment not in {"production", "prod"})

  jobs_batch_size = _positive_int("CLUSTEROPS_JOBS_BATCH_SIZE", "5")
  jobs_max_attempts = _positive_int("CLUSTEROPS_JOBS_MAX_ATTEMPTS", "3")
  jobs_poll_interval_seconds = _positive_float("CLUSTEROPS_JOBS_POLL_INTERVAL_SECONDS", "5")
  simulated_delay_scale = float(os.getenv("CLUSTEROPS_SIMULATED_DELAY_SCALE", "1.0"))
  if simulated_delay_scale < 0:
    raise ValueError("CLUSTEROPS_SIMULATED_DELAY_SCALE must be zero or a positive number.")

  email_notifications_enabled = _parse_bool(os.getenv("CLUSTEROPS_EMAIL_NOTIFICATIONS_ENABLED"))
  email_from_address = _optional_str(os.getenv("CLUSTEROPS_EMAIL_FROM_ADDRESS"))
  mailersend_api_key = _optional_str(os.getenv("CLUSTEROPS_MAILERSEND_API_KEY"))
  mailersend_timeout_seconds = int(os.getenv("CLUSTEROPS_MAILERSEND_TIMEOUT_SECONDS", "10"))

  # Validate notification settings only when notifications are enabled.
  if email_notifications_enabled:
    if not email_from_address:
      raise ValueError("CLUSTEROPS_EMAIL_FROM_ADDRESS must be set when email notifications are enabled.")

    if not mailersend_api_key:
      raise ValueError("CLUSTEROPS_MAILERSEND_API_KEY must be set when email notifications are enabled.")

    if mailersend_timeout_seconds <= 0:
      raise ValueError("CLUSTEROPS_MAILERSEND_TIMEOUT_SECONDS must be a positive integer.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("CLUSTEROPS_ALLOWED_ORIGINS")),
    debug=debug,
    log_dir=(os.getenv("CLUSTEROPS_LOG_DIR") or "./logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    pg_dsn=_database_dsn(),
    pg_connect_timeout=_positive_int("CLUSTEROPS_PG_CONNECT_TIMEOUT", "5"),
    auto_create_schema=auto_create_schema,
    k8s_namespace_prefix=os.getenv("CLUSTEROPS_K8S_NAMESPACE_PREFIX", "clusterops-"),
    k8s_in_cluster=_parse_bool(os.getenv("CLUSTEROPS_K8S_IN_CLUSTER")),
    k8s_kubeconfig=_optional_str(os.getenv("CLUSTEROPS_K8S_KUBECONFIG")),
    k8s_simulate=_parse_bool(os.getenv("CLUSTEROPS_K8S_SIMULATE")),
    k8s_storage_class=(os.getenv("CLUSTEROPS_K8S_STORAGE_CLASS") or "local-path").strip(),
    mongo_image=(os.getenv("CLUSTEROPS_MONGO_IMAGE") or "mongo:7.0").strip(),
    mongo_version=(os.getenv("CLUSTEROPS_MONGO_VERSION") or "7.0.5").strip(),
    backup_pvc_size=(os.getenv("CLUSTEROPS_BACKUP_PVC_SIZE") or "5Gi").strip(),
    node_external_ip=_optional_str(os.getenv("CLUSTEROPS_NODE_EXTERNAL_IP")),
    simulated_delay_scale=simulated_delay_scale,
    jobs_auto_process=_parse_bool(os.getenv("CLUSTEROPS_JOBS_AUTO_PROCESS"), default=True),
    jobs_poll_interval_seconds=jobs_poll_interval_seconds,
    jobs_batch_size=jobs_batch_size,
    jobs_max_attempts=jobs_max_attempts,
    internal_api_token=_optional_str(os.getenv("CLUSTEROPS_INTERNAL_API_TOKEN")),
    email_notifications_enabled=email_notifications_enabled,
    email_from_address=email_from_address,
    email_from_name=_optional_str(os.getenv("CLUSTEROPS_EMAIL_FROM_NAME")),
    mailersend_api_key=mailersend_api_key,
    mailersend_timeout_seconds=mailersend_timeout_seconds,
    mailersend_base_url=(os.getenv("CLUSTEROPS_MAILERSEND_BASE_URL") or "https://api.mailersend.com/v1").strip(),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  debug = _parse_bool(os.getenv("CLUSTEROPS_DEBUG"))
  pg_connect_timeout = _positive_int("CLUSTEROPS_PG_CONNECT_TIMEOUT", "5")
  return DatabaseSettings(debug=debug, pg_dsn=_database_dsn(), pg_connect_timeout=pg_connect_timeout)
