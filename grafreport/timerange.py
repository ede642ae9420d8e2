"""Grafana time specifications and their conversion to absolute times.

Supported forms:
  * relative: "now", "now-1h", "now-2d", "now-3w", "now-5M", "now-1y"
  * boundary: "now/d", "now-1d/d", "now/w", ...; the start of the period
    when used as 'from', the end of the period when used as 'to'
  * absolute milliseconds since the epoch: "1463464226537"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

_RELATIVE_RE = re.compile(r"now([+-][0-9]+)([mhdwMy])")
_BOUNDARY_RE = re.compile(r"(.*?)/([dwMy])")
_ABSOLUTE_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class UnrecognisedTimeError(ValueError):
    """Raised for a time specification that cannot be parsed."""

    def __init__(self, spec: str) -> None:
        super().__init__(f"{spec} is not a recognised time format")
        self.spec = spec


class _Boundary(Enum):
    FROM = 0
    TO = 1


@dataclass(frozen=True)
class TimeRange:
    """A pair of Grafana time specifications."""

    from_: str
    to: str

    def from_formatted(self) -> str:
        """The 'from' time as an absolute, printable time."""
        return _format_unix_date(parse_from(self.from_))

    def to_formatted(self) -> str:
        """The 'to' time as an absolute, printable time."""
        return _format_unix_date(parse_to(self.to))


def new_time_range(from_: str | None, to: str | None) -> TimeRange:
    """Create a TimeRange, defaulting to the last hour."""
    return TimeRange(from_ or "now-1h", to or "now")


def parse_from(spec: str, now: datetime | None = None) -> datetime:
    """Resolve a 'from' specification against ``now``."""
    return _parse_boundary(spec, _Boundary.FROM, _now(now))


def parse_to(spec: str, now: datetime | None = None) -> datetime:
    """Resolve a 'to' specification against ``now``."""
    return _parse_boundary(spec, _Boundary.TO, _now(now))


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now().astimezone()


def _format_unix_date(moment: datetime) -> str:
    zone = moment.strftime("%Z") or moment.strftime("%z") or "UTC"
    return (
        f"{moment:%a %b} {moment.day:2d} {moment:%H:%M:%S} {zone} {moment.year}"
    )


def _parse_boundary(spec: str, boundary: _Boundary, now: datetime) -> datetime:
    match = _BOUNDARY_RE.fullmatch(spec)
    if match is None:
        return _parse_moment(spec, now)
    moment = _parse_moment(match.group(1), now)
    return _round_to_boundary(moment, boundary, match.group(2))


def _round_to_boundary(moment: datetime, boundary: _Boundary, unit: str) -> datetime:
    year, month, day = moment.year, moment.month, moment.day
    step = 1 if boundary is _Boundary.TO else 0

    if unit == "d":
        day += step
    elif unit == "w":
        weekday = (moment.weekday() + 1) % 7  # Sunday is 0
        day += 7 - weekday if boundary is _Boundary.TO else -weekday
    elif unit == "M":
        day = 1
        month += step
    elif unit == "y":
        day = 1
        month = 1
        year += step

    return _normalised_midnight(year, month, day, moment)


def _normalised_midnight(year: int, month: int, day: int, like: datetime) -> datetime:
    """Midnight of a date whose month and day may lie outside their ranges."""
    extra_years, month_index = divmod(month - 1, 12)
    try:
        first = like.replace(
            year=year + extra_years,
            month=month_index + 1,
            day=1,
            hour=0,
            minute=0,
            second=0,
            microsecond=0,
        )
        return first + timedelta(days=day - 1)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"date out of range: {year}-{month}-{day}") from exc


def _add_date(moment: datetime, years: int, months: int, days: int) -> datetime:
    extra_years, month_index = divmod(moment.month - 1 + months, 12)
    first = moment.replace(year=moment.year + years + extra_years, month=month_index + 1, day=1)
    return first + timedelta(days=moment.day - 1 + days)


def _parse_moment(spec: str, now: datetime) -> datetime:
    if spec == "now":
        return now
    if _RELATIVE_RE.fullmatch(spec):
        return _parse_relative(spec, now)
    return _parse_absolute(spec, now)


def _parse_relative(spec: str, now: datetime) -> datetime:
    match = _RELATIVE_RE.fullmatch(spec)
    if match is None:
        raise UnrecognisedTimeError(spec)
    amount = int(match.group(1))
    unit = match.group(2)
    try:
        if unit == "m":
            return now + timedelta(minutes=amount)
        if unit == "h":
            return now + timedelta(hours=amount)
        if unit == "d":
            return _add_date(now, 0, 0, amount)
        if unit == "w":
            return _add_date(now, 0, 0, amount * 7)
        if unit == "M":
            return _add_date(now, 0, amount, 0)
        return _add_date(now, amount, 0, 0)
    except (ValueError, OverflowError) as exc:
        raise UnrecognisedTimeError(spec) from exc


def _parse_absolute(spec: str, now: datetime) -> datetime:
    if not _ABSOLUTE_RE.fullmatch(spec):
        raise UnrecognisedTimeError(spec)
    millis = int(spec)
    if not _INT64_MIN <= millis <= _INT64_MAX:
        raise UnrecognisedTimeError(spec)
    seconds = abs(millis) // 1000 * (1 if millis >= 0 else -1)
    try:
        if now.tzinfo is not None:
            return datetime.fromtimestamp(seconds, tz=now.tzinfo)
        return datetime.fromtimestamp(seconds)
    except (ValueError, OverflowError, OSError) as exc:
        raise UnrecognisedTimeError(spec) from exc