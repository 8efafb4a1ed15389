"""Calendar links and ICS export for a watch's estimated time."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from blocktime.networks import network_label

DEFAULT_EVENT_LENGTH = timedelta(minutes=30)

_ICS_FORMAT = "%Y%m%dT%H%M%SZ"


@dataclass(frozen=True)
class CalendarLinks:
    google: str
    outlook: str
    ics_url: str


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def event_title(target_height: int, network: str) -> str:
    return f"Block {target_height:,} - {network_label(network)}"


def event_description(target_height: int, network: str, base_url: str | None = None) -> str:
    text = f"Target block {target_height} on {network_label(network)} is expected to be reached at this time."
    if base_url:
        text += f"\n\nTrack: {base_url}"
    return text


def google_calendar_link(title: str, description: str, start: datetime, end: datetime | None = None) -> str:
    start = _utc(start)
    end = _utc(end) if end else start + DEFAULT_EVENT_LENGTH
    query = urlencode(
        {
            "action": "TEMPLATE",
            "text": title,
            "details": description,
            "dates": f"{start.strftime(_ICS_FORMAT)}/{end.strftime(_ICS_FORMAT)}",
        }
    )
    return f"https://calendar.google.com/calendar/render?{query}"


def outlook_calendar_link(title: str, description: str, start: datetime, end: datetime | None = None) -> str:
    start = _utc(start)
    end = _utc(end) if end else start + DEFAULT_EVENT_LENGTH
    query = urlencode(
        {
            "subject": title,
            "body": description,
            "startdt": start.isoformat().replace("+00:00", "Z"),
            "enddt": end.isoformat().replace("+00:00", "Z"),
            "path": "/calendar/action/compose",
            "rru": "addevent",
        }
    )
    return f"https://outlook.live.com/calendar/0/deeplink/compose?{query}"


def ics_content(
    title: str,
    description: str,
    start: datetime,
    end: datetime | None = None,
    uid: str | None = None,
    stamp: datetime | None = None,
) -> str:
    """Single-event iCalendar body (CRLF line endings)."""
    start = _utc(start)
    end = _utc(end) if end else start + DEFAULT_EVENT_LENGTH
    stamp = _utc(stamp) if stamp else datetime.now(timezone.utc)
    escaped = description.replace("\n", "\\n")
    return "\r\n".join(
        [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            "PRODID:-//BlockToTime//EN",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
            "BEGIN:VEVENT",
            f"UID:{uid or uuid.uuid4()}@blocktime",
            f"DTSTART:{start.strftime(_ICS_FORMAT)}",
            f"DTEND:{end.strftime(_ICS_FORMAT)}",
            f"SUMMARY:{title}",
            f"DESCRIPTION:{escaped}",
            f"DTSTAMP:{stamp.strftime(_ICS_FORMAT)}",
            "END:VEVENT",
            "END:VCALENDAR",
        ]
    )


def build_calendar_links(
    watch_id: str,
    target_height: int,
    network: str,
    estimated_time: datetime,
    base_url: str,
) -> CalendarLinks:
    title = event_title(target_height, network)
    description = event_description(target_height, network, base_url)
    return CalendarLinks(
        google=google_calendar_link(title, description, estimated_time),
        outlook=outlook_calendar_link(title, description, estimated_time),
        ics_url=f"{base_url.rstrip('/')}/api/v1/calendar/{watch_id}",
    )
