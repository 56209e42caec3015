"""
Utility helpers shared across routers/services.
"""

from datetime import datetime, timezone
from typing import Optional

from .otp import as_utc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Long human date, e.g. 'Oct 19, 2026, 4:51:07 PM'."""
    if value is None:
        return None
    stamp = as_utc(value)
    hour = stamp.hour % 12 or 12
    meridiem = "AM" if stamp.hour < 12 else "PM"
    return f"{stamp:%b} {stamp.day}, {stamp.year}, {hour}:{stamp:%M:%S} {meridiem}"


def format_relative(value: Optional[datetime], now: Optional[datetime] = None) -> Optional[str]:
    """Distance from now in words ('5 minutes ago', 'in 2 hours')."""
    if value is None:
        return None
    current = now or utcnow()
    delta = (current - as_utc(value)).total_seconds()
    future = delta < 0
    seconds = abs(int(delta))
    if seconds < 45:
        phrase = "less than a minute"
    else:
        # largest unit that fits, counted in whole units
        phrase = "1 minute"
        for unit, size in (("year", 31536000), ("month", 2592000), ("day", 86400), ("hour", 3600), ("minute", 60)):
            if seconds >= size:
                amount = seconds // size
                phrase = f"{amount} {unit}" + ("" if amount == 1 else "s")
                break
    return f"in {phrase}" if future else f"{phrase} ago"
