"""Static resource profiles per pricing tier."""

from __future__ import annotations

from dataclasses import dataclass

LOWEST_TIER = "DEV"


@dataclass(frozen=True)
class PlanResourceProfile:
  """CPU, memory, storage and replica sizing for one pricing tier."""

  tier: str
  cpu: str
  memory: str
  storage: str
  replicas: int
  cpu_limit: str
  memory_limit: str
  dedicated: bool = False
  operator: bool = False

  @property
  def operator_managed(self) -> bool:
    """Replica-set tiers, dedicated tiers and explicitly flagged tiers run under the database operator."""
    return self.operator or self.dedicated or self.replicas >= 3

  def container_resources(self) -> dict[str, dict[str, str]]:
    return {"requests": {"cpu": self.cpu, "memory": self.memory}, "limits": {"cpu": self.cpu_limit, "memory": self.memory_limit}}


PLAN_RESOURCES: dict[str, PlanResourceProfile] = {
  profile.tier: profile
  for profile in (
    PlanResourceProfile("DEV", cpu="50m", memory="128Mi", storage="1Gi", replicas=1, cpu_limit="200m", memory_limit="256Mi"),
    PlanResourceProfile("SMALL", cpu="100m", memory="256Mi", storage="5Gi", replicas=1, cpu_limit="500m", memory_limit="512Mi"),
    # MEDIUM is the entry replica-set tier: a single member today, scaled by the operator on upgrade.
    PlanResourceProfile("MEDIUM", cpu="150m", memory="512Mi", storage="10Gi", replicas=1, cpu_limit="750m", memory_limit="1Gi", operator=True),
    PlanResourceProfile("LARGE", cpu="250m", memory="1Gi", storage="25Gi", replicas=3, cpu_limit="1000m", memory_limit="2Gi"),
    PlanResourceProfile("XLARGE", cpu="500m", memory="2Gi", storage="50Gi", replicas=3, cpu_limit="2000m", memory_limit="4Gi"),
    PlanResourceProfile("XXL", cpu="1000m", memory="4Gi", storage="100Gi", replicas=3, cpu_limit="2000m", memory_limit="8Gi"),
    PlanResourceProfile("XXXL", cpu="2000m", memory="8Gi", storage="250Gi", replicas=3, cpu_limit="4000m", memory_limit="16Gi"),
    PlanResourceProfile("DEDICATED_L", cpu="4000m", memory="8Gi", storage="250Gi", replicas=3, cpu_limit="8000m", memory_limit="16Gi", dedicated=True),
    PlanResourceProfile("DEDICATED_XL", cpu="8000m", memory="16Gi", storage="500Gi", replicas=3, cpu_limit="16000m", memory_limit="32Gi", dedicated=True),
  )
}


def get_profile(plan: str | None) -> PlanResourceProfile:
  """Look up a tier profile; unknown tiers fall back to the lowest tier."""
  if plan is None:
    return PLAN_RESOURCES[LOWEST_TIER]
  return PLAN_RESOURCES.get(plan.upper(), PLAN_RESOURCES[LOWEST_TIER])


def is_operator_managed(plan: str | None) -> bool:
  return get_profile(plan).operator_managed


def is_known_plan(plan: str) -> bool:
  return plan.upper() in PLAN_RESOURCES
