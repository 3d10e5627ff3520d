from datetime import date, datetime, timezone

MILLIS_PER_WEEK = 7 * 24 * 60 * 60 * 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def iso_timestamp(dt: datetime) -> str:
    """
    "2024-05-01T10:20:30.123Z" (même forme que les clients JS).
    """
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_date(value) -> str:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(str(value)).isoformat()


def week_number(now_ms: int) -> int:
    return now_ms // MILLIS_PER_WEEK
