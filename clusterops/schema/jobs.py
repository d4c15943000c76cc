from __future__ import annotations

import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clusterops.core.database import Base
from clusterops.schema.types import JsonColumn


class ClusterJob(Base):
  __tablename__ = "cluster_jobs"
  __table_args__ = (Index("ix_cluster_jobs_status_created_at", "status", "created_at"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  status: Mapped[str] = mapped_column(String, nullable=False)
  target_cluster_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  target_project_id: Mapped[str | None] = mapped_column(String, nullable=True)
  target_org_id: Mapped[str | None] = mapped_column(String, nullable=True)
  payload: Mapped[dict] = mapped_column(JsonColumn, nullable=False, default=dict)
  result: Mapped[dict | None] = mapped_column(JsonColumn, nullable=True)
  last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
  attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
  started_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  completed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
