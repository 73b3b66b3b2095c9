from datetime import datetime, timezone

import pytz

from monety.core.config import get_settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ledger_zone() -> pytz.BaseTzInfo:
    return pytz.timezone(get_settings().ledger_timezone)


def to_ledger_time(value: datetime) -> datetime:
    return as_utc(value).astimezone(ledger_zone())


def ledger_date_key(value: datetime) -> str:
    """Calendar day of ``value`` in the ledger zone, as ``YYYY-MM-DD``."""
    return to_ledger_time(value).date().isoformat()


def elapsed_hours(start: datetime, end: datetime) -> float:
    return (as_utc(end) - as_utc(start)).total_seconds() / 3600.0


def resolve_now(now: datetime | None = None) -> datetime:
    """UTC moment for an operation; naive values are taken as UTC."""
    if now is None:
        return utc_now()
    return as_utc(now)
