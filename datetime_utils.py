from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


UTC = timezone.utc


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _normalize_fraction(s: str) -> str:
    """Pad or trim fractional seconds to 6 digits."""

    digits = s[:6]
    if len(digits) < 6:
        digits = digits + "0" * (6 - len(digits))
    return digits


def parse_iso(s: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp and return a timezone-aware UTC datetime.

    Naive values are taken as UTC. Fractional seconds of any precision are
    accepted (the mobile client writes microseconds, other writers may not).
    """

    if not s:
        return None

    value = s.strip()
    if not value:
        return None

    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    if "." in value:
        head, tail = value.split(".", 1)
        tz_part = ""
        for sign in ("+", "-"):
            if sign in tail:
                frac, offset = tail.split(sign, 1)
                tz_part = f"{sign}{offset}"
                break
        else:
            frac = tail
        value = f"{head}.{_normalize_fraction(frac)}{tz_part}"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None

    return ensure_utc(dt)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to ISO-8601 in UTC, keeping microseconds."""

    value = ensure_utc(dt)
    if value is None:
        return None
    return value.isoformat()


__all__ = [
    "UTC",
    "ensure_utc",
    "parse_iso",
    "to_iso",
    "utc_now",
]
