"""UTC time helpers."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def floor_to_window(moment: datetime, window_seconds: int) -> datetime:
    """Floor a timestamp to the start of its fixed window (epoch aligned)."""
    if window_seconds <= 0:
        raise ValueError("window_seconds must be positive")
    moment = ensure_utc(moment)
    epoch = int(moment.timestamp())
    return datetime.fromtimestamp(epoch - (epoch % window_seconds), tz=timezone.utc)
