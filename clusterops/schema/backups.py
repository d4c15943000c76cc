from __future__ import annotations

import datetime

from sqlalchemy import BigInteger, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clusterops.core.database import Base
from clusterops.schema.types import JsonColumn


class Backup(Base):
  __tablename__ = "backups"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  cluster_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  project_id: Mapped[str] = mapped_column(String, nullable=False)
  org_id: Mapped[str] = mapped_column(String, nullable=False)
  name: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
  size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
  compressed_size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
  storage_path: Mapped[str | None] = mapped_column(String, nullable=True)
  metadata_json: Mapped[dict | None] = mapped_column("metadata", JsonColumn, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  started_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  completed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
