"""Create subscription, watermark and identity tables.

Revision ID: 0001_create_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

``subscriptions`` and ``watermarks`` are keyed by referendum index and
network (``dot`` or ``ksm``).  ``identities`` caches on-chain display
names, including negative results (NULL display); ``identity_overrides``
holds operator-pinned names.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_create_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "subscriptions",
        sa.Column("chat_id", sa.String(64), nullable=False),
        sa.Column("ref_id", sa.Integer(), nullable=False),
        sa.Column("network", sa.String(8), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("chat_id", "ref_id", "network", name="pk_subscriptions"),
        sa.CheckConstraint("network IN ('dot', 'ksm')", name="ck_subscriptions_network"),
    )
    op.create_index("ix_subscriptions_target", "subscriptions", ["ref_id", "network"])

    op.create_table(
        "watermarks",
        sa.Column("ref_id", sa.Integer(), nullable=False),
        sa.Column("network", sa.String(8), nullable=False),
        sa.Column("since_sec", sa.BigInteger(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("ref_id", "network", name="pk_watermarks"),
        sa.CheckConstraint("network IN ('dot', 'ksm')", name="ck_watermarks_network"),
    )

    op.create_table(
        "identities",
        sa.Column("address", sa.String(128), primary_key=True),
        sa.Column("display", sa.String(256), nullable=True),
        sa.Column("refreshed_at", sa.BigInteger(), nullable=False),
    )

    op.create_table(
        "identity_overrides",
        sa.Column("address", sa.String(128), primary_key=True),
        sa.Column("display", sa.String(256), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("identity_overrides")
    op.drop_table("identities")
    op.drop_table("watermarks")
    op.drop_index("ix_subscriptions_target", table_name="subscriptions")
    op.drop_table("subscriptions")
