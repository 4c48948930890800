"""Initial schema — event log and options tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def upgrade() -> None:
    # ── Standalone tables (no FKs) ─────────────────────────────────────

    op.create_table(
        "logify_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("date_time", sa.DateTime(), nullable=False, comment="UTC, second precision"),
        sa.Column("user_id", sa.Integer()),
        sa.Column("user_role", sa.String(100), nullable=False, server_default=""),
        sa.Column("source_ip", sa.String(45)),
        sa.Column("event_type", sa.String(255), nullable=False),
        sa.Column("object_type", sa.String(20), nullable=False),
        sa.Column("object_id", sa.String(255), nullable=False),
        sa.Column("object_label", sa.String(255)),
        sa.Column("details", sa.Text()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_logify_events_date_time", "logify_events", ["date_time"])
    op.create_index("idx_logify_events_user_type", "logify_events", ["user_id", "event_type"])
    op.create_index("idx_logify_events_object", "logify_events", ["object_type", "object_id"])

    op.create_table(
        "logify_options",
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("value", sa.JSON()),
        sa.PrimaryKeyConstraint("name"),
    )


def downgrade() -> None:
    op.drop_table("logify_options")
    op.drop_index("idx_logify_events_object", table_name="logify_events")
    op.drop_index("idx_logify_events_user_type", table_name="logify_events")
    op.drop_index("idx_logify_events_date_time", table_name="logify_events")
    op.drop_table("logify_events")
