from collections.abc import Iterator
from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to already be in UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def day_key(dt: datetime) -> str:
    return as_utc(dt).date().isoformat()


def iter_days(start: datetime, end: datetime, limit: int | None = None) -> Iterator[datetime]:
    """Step one day at a time from start while not past end, keeping the time of day."""
    current = as_utc(start)
    end = as_utc(end)
    count = 0
    while current <= end and (limit is None or count < limit):
        yield current
        current += timedelta(days=1)
        count += 1
