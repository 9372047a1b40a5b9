"""Date-time helpers; timestamps are stored as naive UTC."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time without tzinfo, matching stored columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Normalise an aware timestamp to naive UTC; naive values pass through."""

    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def epoch_millis(value: datetime) -> int:
    """Milliseconds since the Unix epoch for a naive-UTC or aware timestamp."""

    aware = value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value
    return int(aware.timestamp() * 1000)
