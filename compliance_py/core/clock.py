"""Effective time providers used when evaluating time-scoped rules."""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

# date-time production of RFC 3339 section 5.6, upper case separators only
RFC3339_PATTERN = re.compile(
    r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"T(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?:(?P<utc>Z)|(?P<sign>[+-])(?P<offset_hour>\d{2}):(?P<offset_minute>\d{2}))"
)


class EffectiveTimeProvider(Protocol):
    """Supplies the instant policy rules are evaluated at."""

    def effective_time(self) -> datetime:
        ...


class SystemClock:
    """Evaluate at the current wall-clock time (UTC)."""

    def effective_time(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Evaluate at a fixed instant, e.g. one requested by the user."""

    def __init__(self, at: datetime):
        self.at = ensure_utc(at)

    def effective_time(self) -> datetime:
        return self.at


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_rfc3339(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp such as ``2023-01-01T00:00:00Z``.

    Returns None for empty input. Raises ValueError for anything that is not
    an RFC 3339 date-time with an explicit offset: no space separator, week
    dates, basic format or naive times. Fractions beyond microseconds are
    truncated.
    """
    if not value:
        return None
    match = RFC3339_PATTERN.fullmatch(value)
    if match is None:
        raise ValueError(f"timestamp {value!r} is not in RFC 3339 format")

    if match.group("utc"):
        tz = timezone.utc
    else:
        offset = timedelta(
            hours=int(match.group("offset_hour")),
            minutes=int(match.group("offset_minute")),
        )
        if offset >= timedelta(hours=24) or int(match.group("offset_minute")) > 59:
            raise ValueError(f"timestamp {value!r} has an invalid offset")
        tz = timezone(-offset if match.group("sign") == "-" else offset)

    fraction = match.group("fraction") or ""
    return datetime(
        int(match.group("year")),
        int(match.group("month")),
        int(match.group("day")),
        int(match.group("hour")),
        int(match.group("minute")),
        int(match.group("second")),
        int(fraction[:6].ljust(6, "0")),
        tzinfo=tz,
    )
