"""create catalog validation tables

Revision ID: 5c1f0e7a9b2d
Revises:
Create Date: 2026-10-17 09:12:41.104215

Details
* upgrade -> create dataset, resource, resource_history, validation and
    logs_validation tables
* downgrade -> drop them
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "5c1f0e7a9b2d"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "dataset",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("datagouv_id", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("datagouv_id"),
    )
    op.create_table(
        "resource",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("dataset_id", sa.Integer(), nullable=False),
        sa.Column("datagouv_id", sa.String(length=64), nullable=False),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column("format", sa.String(length=32), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["dataset_id"], ["dataset.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_resource_dataset_id", "resource", ["dataset_id"])

    op.create_table(
        "resource_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("datagouv_id", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column(
            "inserted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_resource_history_datagouv_id", "resource_history", ["datagouv_id"])

    op.create_table(
        "validation",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.String(length=64), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("max_error", sa.String(length=16), nullable=True),
        sa.Column(
            "inserted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["resource_id"], ["resource.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_validation_resource_id", "validation", ["resource_id"])
    op.create_index("ix_validation_max_error", "validation", ["max_error"])

    op.create_table(
        "logs_validation",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_success", sa.Boolean(), nullable=False),
        sa.Column("error_msg", sa.String(length=1024), nullable=True),
        sa.ForeignKeyConstraint(["resource_id"], ["resource.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_logs_validation_resource_id", "logs_validation", ["resource_id"])


def downgrade() -> None:
    op.drop_index("ix_logs_validation_resource_id", table_name="logs_validation")
    op.drop_table("logs_validation")
    op.drop_index("ix_validation_max_error", table_name="validation")
    op.drop_index("ix_validation_resource_id", table_name="validation")
    op.drop_table("validation")
    op.drop_index("ix_resource_history_datagouv_id", table_name="resource_history")
    op.drop_table("resource_history")
    op.drop_index("ix_resource_dataset_id", table_name="resource")
    op.drop_table("resource")
    op.drop_table("dataset")
