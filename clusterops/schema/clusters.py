from __future__ import annotations

import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from clusterops.core.database import Base


class Cluster(Base):
  __tablename__ = "clusters"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  org_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  project_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  plan: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, default="creating")
  mongo_version: Mapped[str | None] = mapped_column(String, nullable=True)
  connection_host: Mapped[str | None] = mapped_column(String, nullable=True)
  connection_port: Mapped[int | None] = mapped_column(Integer, nullable=True)
  replica_set_name: Mapped[str | None] = mapped_column(String, nullable=True)
  srv_host: Mapped[str | None] = mapped_column(String, nullable=True)
  external_host: Mapped[str | None] = mapped_column(String, nullable=True)
  external_port: Mapped[int | None] = mapped_column(Integer, nullable=True)
  created_by: Mapped[str | None] = mapped_column(String, nullable=True)
  paused_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
