"""Read-only mappings of the account service's users and projects tables.

Only the columns needed to compose notifications are mapped. The tables are
owned and migrated by the account service.
"""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from clusterops.core.database import Base


class DirectoryUser(Base):
  __tablename__ = "users"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  email: Mapped[str] = mapped_column(String, nullable=False)
  name: Mapped[str | None] = mapped_column(String, nullable=True)


class DirectoryProject(Base):
  __tablename__ = "projects"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
