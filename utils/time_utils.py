from __future__ import annotations

from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo


DEFAULT_TIMEZONE_NAME = "Europe/Berlin"
BERLIN_TIMEZONE = ZoneInfo(DEFAULT_TIMEZONE_NAME)


def utc_now() -> datetime:
    return datetime.now(UTC)


def resolve_zone(name: str | None) -> ZoneInfo:
    return ZoneInfo(name) if name else BERLIN_TIMEZONE


def end_of_day_after(now: datetime, days: int, zone: ZoneInfo) -> datetime:
    """Local 23:59:59 on the day ``days`` after ``now``, returned in UTC."""
    local_day = now.astimezone(zone).date() + timedelta(days=days)
    return datetime.combine(local_day, time(23, 59, 59), tzinfo=zone).astimezone(UTC)


def parse_utc_iso(text: str) -> datetime:
    """Parse a persisted ISO timestamp; naive values are read as UTC. Raises ValueError."""
    value = datetime.fromisoformat(text.strip())
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def unix_timestamp(value: datetime) -> int:
    return int(value.timestamp())
