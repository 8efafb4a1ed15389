"""Block watches and their tier notifications.

Creates block_watches and block_watch_notifications with the unique
(watch_id, tier) constraint and the indexes the notification cycle
selects on.

Revision ID: 001_block_watches
Revises:
Create Date: 2026-02-25
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_block_watches"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create block watch tables."""
    op.create_table(
        "block_watches",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(255), nullable=False),
        sa.Column("network", sa.String(32), nullable=False),
        sa.Column("target_height", sa.BigInteger(), nullable=False),
        sa.Column("current_height", sa.BigInteger(), nullable=False),
        sa.Column("estimated_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("timezone", sa.String(64), server_default="UTC", nullable=False),
        sa.Column("title", sa.String(200), server_default="", nullable=False),
        sa.Column("webhook_url", sa.Text(), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("reached_notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_block_watches_owner_id", "block_watches", ["owner_id"])
    op.create_index("ix_block_watches_estimated_time", "block_watches", ["estimated_time"])
    op.create_index("ix_block_watches_network_target", "block_watches", ["network", "target_height"])

    op.create_table(
        "block_watch_notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "watch_id",
            sa.String(36),
            sa.ForeignKey("block_watches.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("tier", sa.String(32), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("watch_id", "tier", name="uq_block_watch_notifications_watch_tier"),
    )
    op.create_index("ix_block_watch_notifications_due", "block_watch_notifications", ["sent", "scheduled_for"])
    op.create_index(
        "ix_block_watch_notifications_watch_sent", "block_watch_notifications", ["watch_id", "sent"]
    )


def downgrade() -> None:
    """Drop block watch tables."""
    op.drop_index("ix_block_watch_notifications_watch_sent", table_name="block_watch_notifications")
    op.drop_index("ix_block_watch_notifications_due", table_name="block_watch_notifications")
    op.drop_table("block_watch_notifications")
    op.drop_index("ix_block_watches_network_target", table_name="block_watches")
    op.drop_index("ix_block_watches_estimated_time", table_name="block_watches")
    op.drop_index("ix_block_watches_owner_id", table_name="block_watches")
    op.drop_table("block_watches")
