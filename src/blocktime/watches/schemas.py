"""Pydantic schemas for block watch endpoints."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from blocktime.db.models import BlockWatch
from blocktime.networks import Network
from blocktime.watches.tiers import WatchState, watch_state


class SubscribeRequest(BaseModel):
    """Subscribe to a target block. At least one delivery channel is required."""

    target_block: int = Field(..., gt=0)
    network: Network
    timezone: str = "UTC"
    title: str | None = Field(None, max_length=200)
    slack_webhook_url: str | None = Field(None, max_length=2048)
    email: EmailStr | None = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("slack_webhook_url")
    @classmethod
    def validate_webhook(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith("https://"):
            raise ValueError("Webhook URL must use https")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.lower().strip() if v else None

    @model_validator(mode="after")
    def require_channel(self) -> SubscribeRequest:
        if not self.slack_webhook_url and not self.email:
            raise ValueError("At least one notification method is required (slack_webhook_url or email).")
        return self


class NotificationResponse(BaseModel):
    tier: str
    scheduled_for: datetime
    sent: bool
    sent_at: datetime | None = None


class WatchResponse(BaseModel):
    id: str
    title: str
    target_block: int
    current_block: int
    network: Network
    estimated_time: datetime
    timezone: str
    slack_webhook_url: str | None = None
    email: str | None = None
    state: WatchState
    reached_notified_at: datetime | None = None
    created_at: datetime
    notifications: list[NotificationResponse] = []

    @classmethod
    def from_watch(cls, watch: BlockWatch) -> WatchResponse:
        webhook = watch.webhook_url
        if webhook:
            webhook = f"...{webhook[-8:]}"
        notifications = sorted(watch.notifications, key=lambda n: n.scheduled_for)
        return cls(
            id=watch.id,
            title=watch.title,
            target_block=watch.target_height,
            current_block=watch.current_height,
            network=Network(watch.network),
            estimated_time=watch.estimated_time,
            timezone=watch.timezone,
            slack_webhook_url=webhook,
            email=watch.email,
            state=watch_state(watch.reached_notified_at, (n.sent for n in notifications)),
            reached_notified_at=watch.reached_notified_at,
            created_at=watch.created_at,
            notifications=[
                NotificationResponse(
                    tier=n.tier, scheduled_for=n.scheduled_for, sent=n.sent, sent_at=n.sent_at
                )
                for n in notifications
            ],
        )


class DeleteWatchResponse(BaseModel):
    deleted: bool
