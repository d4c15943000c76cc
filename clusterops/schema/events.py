from __future__ import annotations

import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clusterops.core.database import Base
from clusterops.schema.types import JsonColumn


class ClusterEvent(Base):
  __tablename__ = "cluster_events"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  org_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  project_id: Mapped[str | None] = mapped_column(String, nullable=True)
  cluster_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  severity: Mapped[str] = mapped_column(String, nullable=False)
  message: Mapped[str] = mapped_column(Text, nullable=False)
  metadata_json: Mapped[dict | None] = mapped_column("metadata", JsonColumn, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
