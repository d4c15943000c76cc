from __future__ import annotations

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON on SQLite for local development and tests.
JsonColumn = JSON().with_variant(JSONB(), "postgresql")
