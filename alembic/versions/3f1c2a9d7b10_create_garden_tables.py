"""create shoots, seeds, cloud_profiles and shoot_events

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "seeds",
        sa.Column("name", sa.String(), primary_key=True, nullable=False),
        sa.Column("provider_type", sa.String(), nullable=False),
        sa.Column("region", sa.String(), nullable=False),
        sa.Column("labels", sa.JSON(), nullable=False),
        sa.Column("taints", sa.JSON(), nullable=False),
        sa.Column("networks", sa.JSON(), nullable=False),
        sa.Column("visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("ready", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deletion_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "cloud_profiles",
        sa.Column("name", sa.String(), primary_key=True, nullable=False),
        sa.Column("provider_type", sa.String(), nullable=False),
        sa.Column("seed_selector", sa.JSON(), nullable=True),
    )
    op.create_index("ix_cloud_profiles_provider_type", "cloud_profiles", ["provider_type"])

    op.create_table(
        "shoots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("namespace", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("provider_type", sa.String(), nullable=False),
        sa.Column("region", sa.String(), nullable=False),
        sa.Column("purpose", sa.String(), nullable=False, server_default="evaluation"),
        sa.Column("cloud_profile_name", sa.String(), nullable=True),
        sa.Column("networks", sa.JSON(), nullable=False),
        sa.Column("seed_selector", sa.JSON(), nullable=True),
        sa.Column("dns", sa.JSON(), nullable=False),
        sa.Column("tolerations", sa.JSON(), nullable=False),
        sa.Column("seed_name", sa.String(), nullable=True),
        sa.Column("resource_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("namespace", "name", name="uq_shoots_namespace_name"),
    )
    op.create_index("ix_shoots_namespace", "shoots", ["namespace"])
    op.create_index("ix_shoots_seed_name", "shoots", ["seed_name"])

    op.create_table(
        "shoot_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("shoot_namespace", sa.String(), nullable=False),
        sa.Column("shoot_name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("first_seen", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_seen", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_shoot_events_shoot_namespace", "shoot_events", ["shoot_namespace"])
    op.create_index("ix_shoot_events_shoot_name", "shoot_events", ["shoot_name"])


def downgrade():
    op.drop_table("shoot_events")
    op.drop_table("shoots")
    op.drop_table("cloud_profiles")
    op.drop_table("seeds")
