"""Datetime helpers shared by services and integrations."""

from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes.

    SQLite drops tzinfo on round-trip; values written by this app are always UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_remote_datetime(raw: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp from a vendor payload (accepts trailing Z)."""
    if not raw:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return None


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return [start, end) UTC datetimes for a calendar day."""
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    end = datetime.fromordinal(day.toordinal() + 1).replace(tzinfo=timezone.utc)
    return start, end


def hours_between(start: datetime, end: datetime | None) -> float:
    """Elapsed hours rounded to 2 decimals (0 when still running)."""
    if end is None:
        return 0.0
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return round(max(seconds, 0) / 3600, 2)


def current_month() -> str:
    """Current month as YYYY-MM."""
    return utcnow().strftime("%Y-%m")


def month_bounds(month: str) -> tuple[datetime, datetime]:
    """Return [start, end) UTC datetimes for a YYYY-MM month."""
    year, mon = int(month[:4]), int(month[5:7])
    start = datetime(year, mon, 1, tzinfo=timezone.utc)
    if mon == 12:
        return start, datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    return start, datetime(year, mon + 1, 1, tzinfo=timezone.utc)
