from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    return int(round(value.timestamp() * 1000))


def from_epoch_ms(value: int | float) -> datetime:
    return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from MySQL DATETIME columns."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_datetime(value: datetime) -> datetime:
    """MySQL DATETIME has no zone: store naive UTC."""
    return as_utc(value).replace(tzinfo=None)


def isoformat_utc(value: datetime) -> str:
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")
