from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

# Stored timestamps are naive datetimes in UTC; the API speaks ISO-8601 with "Z".
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to a naive stored value; convert an aware one."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Report range bounds and the like: "2026-10-19", "2026-10-19T08:00",
    "2026-10-19T08:00:00Z" or "+01:00" offsets. Blank -> None.

    Raises ValueError on anything else.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text)).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return as_utc(dt).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def epoch_millis(dt: datetime) -> int:
    return (as_utc(dt) - EPOCH) // timedelta(milliseconds=1)
