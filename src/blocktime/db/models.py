"""ORM models for block watches and their tier notifications."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blocktime.db.base import Base, UTCDateTime


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Block watches
# ---------------------------------------------------------------------------


class BlockWatch(Base):
    """A subscription to a target block height on one network.

    ``reached_notified_at`` is a one-shot latch: once set, the terminal
    "block reached" message has been delivered and must never be sent again.
    """

    __tablename__ = "block_watches"
    __table_args__ = (
        Index("ix_block_watches_owner_id", "owner_id"),
        Index("ix_block_watches_estimated_time", "estimated_time"),
        Index("ix_block_watches_network_target", "network", "target_height"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    network: Mapped[str] = mapped_column(String(32), nullable=False)
    target_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    current_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    estimated_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC", server_default="UTC")
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="", server_default="")
    webhook_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    reached_notified_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    notifications: Mapped[list[Notification]] = relationship(
        "Notification",
        back_populates="watch",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Notification.scheduled_for",
    )


# ---------------------------------------------------------------------------
# Tier notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    """One scheduled tier alert for a watch. Immutable once ``sent``."""

    __tablename__ = "block_watch_notifications"
    __table_args__ = (
        UniqueConstraint("watch_id", "tier", name="uq_block_watch_notifications_watch_tier"),
        Index("ix_block_watch_notifications_due", "sent", "scheduled_for"),
        Index("ix_block_watch_notifications_watch_sent", "watch_id", "sent"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    watch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("block_watches.id", ondelete="CASCADE"), nullable=False
    )
    tier: Mapped[str] = mapped_column(String(32), nullable=False)
    scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    watch: Mapped[BlockWatch] = relationship("BlockWatch", back_populates="notifications")
