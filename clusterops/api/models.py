from __future__ import annotations

import ipaddress
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from clusterops.jobs.collaborators import ClusterEventInput
from clusterops.jobs.models import JobRecord, JobStatus, JobType

_CIDR_HINT = "IPv4 or IPv6 CIDR, e.g. 10.0.0.0/8"


class CamelModel(BaseModel):
  """Base model exchanging camelCase JSON while keeping snake_case attributes."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobCreateRequest(CamelModel):
  """Request payload for enqueueing a cluster operation."""

  type: JobType
  target_cluster_id: StrictStr | None = None
  target_project_id: StrictStr | None = None
  target_org_id: StrictStr | None = None
  payload: dict[str, Any] = Field(default_factory=dict)
  max_attempts: int | None = Field(default=None, ge=1, le=20)
  exclusive: bool = Field(default=False, description="Reject the job while another pending or in-progress job targets the same cluster.")


class JobResponse(CamelModel):
  id: str
  type: JobType
  status: JobStatus
  target_cluster_id: str | None = None
  target_project_id: str | None = None
  target_org_id: str | None = None
  payload: dict[str, Any] = Field(default_factory=dict)
  result: dict[str, Any] | None = None
  last_error: str | None = None
  attempts: int
  max_attempts: int
  created_at: datetime
  updated_at: datetime
  started_at: datetime | None = None
  completed_at: datetime | None = None

  @classmethod
  def from_record(cls, record: JobRecord) -> JobResponse:
    return cls(
      id=record.id,
      type=record.type,
      status=record.status,
      target_cluster_id=record.target_cluster_id,
      target_project_id=record.target_project_id,
      target_org_id=record.target_org_id,
      payload=_redact_payload(record.payload),
      result=record.result,
      last_error=record.last_error,
      attempts=record.attempts,
      max_attempts=record.max_attempts,
      created_at=record.created_at,
      updated_at=record.updated_at,
      started_at=record.started_at,
      completed_at=record.completed_at,
    )


def _redact_payload(payload: dict[str, Any]) -> dict[str, Any]:
  """Hide credential passwords stored in job payloads."""
  credentials = payload.get("credentials")
  if not isinstance(credentials, dict) or "password" not in credentials:
    return payload
  return {**payload, "credentials": {**credentials, "password": "****"}}


class NetworkPolicyRequest(CamelModel):
  allowed_cidrs: list[StrictStr] = Field(default_factory=list, max_length=100, description=_CIDR_HINT)

  @field_validator("allowed_cidrs")
  @classmethod
  def validate_cidrs(cls, value: list[str]) -> list[str]:
    for cidr in value:
      try:
        ipaddress.ip_network(cidr, strict=False)
      except ValueError as exc:
        raise ValueError(f"Invalid CIDR: {cidr}") from exc
    return value


class ExternalAccessResponse(CamelModel):
  enabled: bool
  host: str | None = None
  port: int | None = None


class DatabaseRoleModel(CamelModel):
  role: StrictStr = Field(min_length=1)
  db: StrictStr = Field(min_length=1)


class DatabaseUserCreateRequest(CamelModel):
  username: StrictStr = Field(min_length=1, max_length=63, pattern=r"^[A-Za-z0-9._-]+$")
  password: StrictStr = Field(min_length=8)
  roles: list[DatabaseRoleModel] = Field(default_factory=list)


class DatabaseUserUpdateRequest(CamelModel):
  password: StrictStr | None = Field(default=None, min_length=8)
  roles: list[DatabaseRoleModel] | None = None


class ClusterEventResponse(CamelModel):
  type: str
  severity: str
  message: str
  cluster_id: str | None = None
  project_id: str | None = None
  metadata: dict[str, Any] | None = None

  @classmethod
  def from_event(cls, event: ClusterEventInput) -> ClusterEventResponse:
    return cls(type=event.type, severity=event.severity, message=event.message, cluster_id=event.cluster_id, project_id=event.project_id, metadata=event.metadata)
