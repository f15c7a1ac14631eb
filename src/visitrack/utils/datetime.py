"""
Datetime utilities.

All timestamps handled by visitrack are timezone-aware UTC.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$", re.IGNORECASE)

_UNIT_SECONDS = {
    "": 1,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware UTC.

    Naive values are assumed to already be UTC (the database stores
    ``timestamp`` columns without a zone).
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """
    Parse a duration such as ``"24h"``, ``"7d"``, ``"30m"`` or ``"45"``.

    Bare numbers are seconds.

    Raises:
        ValueError: If the value is not a positive duration
    """
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)):
        seconds = float(value)
    else:
        match = _DURATION_PATTERN.match(value)
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        amount, unit = match.groups()
        seconds = int(amount) * _UNIT_SECONDS[unit.lower()]

    if seconds <= 0:
        raise ValueError(f"Duration must be positive, got: {value!r}")
    return timedelta(seconds=seconds)

