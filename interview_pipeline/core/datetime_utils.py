from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from interview_pipeline.core.config import settings


def utcnow_naive() -> datetime:
    """Return current UTC time as naive datetime for DATETIME columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize a datetime to UTC and strip tzinfo; naive input is assumed to already be UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def calendar_tz() -> ZoneInfo:
    return ZoneInfo(settings.calendar_timezone or "UTC")


def format_clock(dt_utc: datetime) -> str:
    local = dt_utc.replace(tzinfo=timezone.utc).astimezone(calendar_tz())
    return local.strftime("%H:%M")


def format_slot_label(dt_utc: datetime) -> str:
    local = dt_utc.replace(tzinfo=timezone.utc).astimezone(calendar_tz())
    return local.strftime("%d %b %Y, %H:%M %Z")
