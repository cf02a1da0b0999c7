"""UTC timestamp helpers shared by detection and history."""

from datetime import datetime

from pytz import utc

DATE_KEY_FORMAT = "%Y-%m-%d"


def utc_now() -> datetime:
    return datetime.now(utc)


def isoformat_utc(dt: datetime) -> str:
    """Format as ``2024-01-01T12:00:00.000Z``. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = utc.localize(dt)
    dt = dt.astimezone(utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_utc(value: str) -> datetime:
    """Parse an ISO-8601 timestamp and convert it to UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return utc.localize(dt)
    return dt.astimezone(utc)


def date_key(dt: datetime) -> str:
    return dt.astimezone(utc).strftime(DATE_KEY_FORMAT)


def parse_date_key(key: str) -> datetime:
    """Midnight UTC of a ``YYYY-MM-DD`` key."""
    return utc.localize(datetime.strptime(key, DATE_KEY_FORMAT))
