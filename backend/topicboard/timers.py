from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

# A bare number ("24") used to mean hours-from-now; relative values are no longer actionable.
_DATE_AND_TIME = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")


def now_iso() -> str:
    # Stable, lexicographically sortable UTC ISO string.
    return to_iso(datetime.now(timezone.utc))


def to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_datetime(value: Any) -> Optional[datetime]:
    """Parse an absolute date-and-time string into an aware UTC datetime (naive means UTC)."""
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw or not _DATE_AND_TIME.match(raw):
        return None
    # Older interpreters can't parse a trailing "Z" via fromisoformat.
    candidate = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        parsed = datetime.fromisoformat(candidate)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        # Offsets at the edge of the date range overflow when shifted to UTC.
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def parse_auto_close_time(value: Any, now: Optional[datetime] = None) -> Optional[datetime]:
    """Return the close time for an auto-close value, or None when it is not actionable.

    Only absolute timestamps in the future are honoured. Blank, relative, past or
    unparseable values are dropped without raising.
    """
    parsed = parse_iso_datetime(value)
    if parsed is None:
        return None
    if parsed <= (now or datetime.now(timezone.utc)):
        return None
    return parsed
