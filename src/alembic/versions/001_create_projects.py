"""Create projects registry

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=1000), nullable=True),
        sa.Column("database_name", sqlmodel.sql.sqltypes.AutoString(length=63), nullable=False),
        sa.Column("status", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("database_name"),
        sa.UniqueConstraint("organization_id", "name", name="uq_projects_organization_name"),
        schema="public",
    )
    op.create_index(
        "ix_public_projects_organization_id",
        "projects",
        ["organization_id"],
        unique=False,
        schema="public",
    )
    op.create_index(
        "ix_public_projects_created_at", "projects", ["created_at"], unique=False, schema="public"
    )


def downgrade() -> None:
    op.drop_index("ix_public_projects_created_at", table_name="projects", schema="public")
    op.drop_index("ix_public_projects_organization_id", table_name="projects", schema="public")
    op.drop_table("projects", schema="public")
