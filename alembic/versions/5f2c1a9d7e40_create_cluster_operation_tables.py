"""Create cluster operation tables

Revision ID: 5f2c1a9d7e40
Revises:
Create Date: 2026-10-18 09:12:41.503117

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5f2c1a9d7e40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "cluster_jobs",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("type", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("target_cluster_id", sa.String(), nullable=True),
    sa.Column("target_project_id", sa.String(), nullable=True),
    sa.Column("target_org_id", sa.String(), nullable=True),
    sa.Column("payload", _JSON, nullable=False),
    sa.Column("result", _JSON, nullable=True),
    sa.Column("last_error", sa.Text(), nullable=True),
    sa.Column("attempts", sa.Integer(), nullable=False),
    sa.Column("max_attempts", sa.Integer(), nullable=False),
    sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index("ix_cluster_jobs_status_created_at", "cluster_jobs", ["status", "created_at"], unique=False)
  op.create_index(op.f("ix_cluster_jobs_type"), "cluster_jobs", ["type"], unique=False)
  op.create_index(op.f("ix_cluster_jobs_target_cluster_id"), "cluster_jobs", ["target_cluster_id"], unique=False)

  op.create_table(
    "clusters",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("org_id", sa.String(), nullable=False),
    sa.Column("project_id", sa.String(), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("plan", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("mongo_version", sa.String(), nullable=True),
    sa.Column("connection_host", sa.String(), nullable=True),
    sa.Column("connection_port", sa.Integer(), nullable=True),
    sa.Column("replica_set_name", sa.String(), nullable=True),
    sa.Column("srv_host", sa.String(), nullable=True),
    sa.Column("external_host", sa.String(), nullable=True),
    sa.Column("external_port", sa.Integer(), nullable=True),
    sa.Column("created_by", sa.String(), nullable=True),
    sa.Column("paused_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_clusters_org_id"), "clusters", ["org_id"], unique=False)
  op.create_index(op.f("ix_clusters_project_id"), "clusters", ["project_id"], unique=False)

  op.create_table(
    "cluster_events",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("org_id", sa.String(), nullable=False),
    sa.Column("project_id", sa.String(), nullable=True),
    sa.Column("cluster_id", sa.String(), nullable=True),
    sa.Column("type", sa.String(), nullable=False),
    sa.Column("severity", sa.String(), nullable=False),
    sa.Column("message", sa.Text(), nullable=False),
    sa.Column("metadata", _JSON, nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_cluster_events_org_id"), "cluster_events", ["org_id"], unique=False)
  op.create_index(op.f("ix_cluster_events_cluster_id"), "cluster_events", ["cluster_id"], unique=False)
  op.create_index(op.f("ix_cluster_events_type"), "cluster_events", ["type"], unique=False)

  op.create_table(
    "backups",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("cluster_id", sa.String(), nullable=False),
    sa.Column("project_id", sa.String(), nullable=False),
    sa.Column("org_id", sa.String(), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("size_bytes", sa.BigInteger(), nullable=True),
    sa.Column("compressed_size_bytes", sa.BigInteger(), nullable=True),
    sa.Column("storage_path", sa.String(), nullable=True),
    sa.Column("metadata", _JSON, nullable=True),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_backups_cluster_id"), "backups", ["cluster_id"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index(op.f("ix_backups_cluster_id"), table_name="backups")
  op.drop_table("backups")
  op.drop_index(op.f("ix_cluster_events_type"), table_name="cluster_events")
  op.drop_index(op.f("ix_cluster_events_cluster_id"), table_name="cluster_events")
  op.drop_index(op.f("ix_cluster_events_org_id"), table_name="cluster_events")
  op.drop_table("cluster_events")
  op.drop_index(op.f("ix_clusters_project_id"), table_name="clusters")
  op.drop_index(op.f("ix_clusters_org_id"), table_name="clusters")
  op.drop_table("clusters")
  op.drop_index(op.f("ix_cluster_jobs_target_cluster_id"), table_name="cluster_jobs")
  op.drop_index(op.f("ix_cluster_jobs_type"), table_name="cluster_jobs")
  op.drop_index("ix_cluster_jobs_status_created_at", table_name="cluster_jobs")
  op.drop_table("cluster_jobs")
