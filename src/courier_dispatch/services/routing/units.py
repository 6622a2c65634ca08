"""Parsing of the human readable distance and duration strings returned by map services."""

from __future__ import annotations

import logging
import math
import re

from ...config import settings

logger = logging.getLogger(__name__)

_NUMBER = r"(\d+(?:\.\d+)?)"

# Longer alternatives first so "mins" is not read as "m" followed by garbage.
_DURATION_TOKEN = re.compile(
    _NUMBER + r"\s*(days?|d|hours?|hrs?|h|minutes?|mins?|m|seconds?|secs?|s)(?![a-z])"
)
_DISTANCE_TOKEN = re.compile(_NUMBER + r"\s*(km|kilometers?|kilometres?|mi|miles?|m|meters?|metres?)\b")
_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})$")
_BARE_INTEGER = re.compile(r"^\d+$")

_MINUTES_PER_UNIT = {
    "d": 1440.0,
    "h": 60.0,
    "m": 1.0,
    "s": 1.0 / 60.0,
}

# Sentinel for legs whose distance could not be read; sorts after any real distance.
UNRESOLVED_DISTANCE_METERS = 10**12


def _minutes_for_unit(unit: str) -> float:
    if unit.startswith("d"):
        return _MINUTES_PER_UNIT["d"]
    if unit.startswith("h"):
        return _MINUTES_PER_UNIT["h"]
    if unit.startswith("s"):
        return _MINUTES_PER_UNIT["s"]
    return _MINUTES_PER_UNIT["m"]


def duration_minutes(text: str | None) -> int | None:
    """Return the duration in whole minutes (rounded up), or None when unreadable.

    Accepts unit tokens ("25 mins", "1 hour 20 mins", "2 days", "90 seconds"),
    a bare clock value ("01:30") and a bare integer, which is taken as minutes.
    """
    if text is None:
        return None
    value = str(text).strip().lower()
    if not value:
        return None

    clock = _CLOCK.match(value)
    if clock:
        return int(clock.group(1)) * 60 + int(clock.group(2))
    if _BARE_INTEGER.match(value):
        return int(value)

    tokens = _DURATION_TOKEN.findall(value)
    if not tokens:
        return None
    total = sum(float(amount) * _minutes_for_unit(unit) for amount, unit in tokens)
    return math.ceil(round(total, 6))


def parse_time_to_minutes(text: str | None, default: int | None = None) -> int:
    """Like :func:`duration_minutes` but never fails; unreadable input yields the default."""
    fallback = settings.default_leg_minutes if default is None else default
    minutes = duration_minutes(text)
    if minutes is None:
        logger.warning(f"Could not parse duration {text!r}, defaulting to {fallback} minutes")
        return fallback
    return minutes


def parse_distance_meters(text: str | None) -> int | None:
    """Read "5.2 km" / "800 m" / "3 mi" style strings into meters."""
    if text is None:
        return None
    value = str(text).strip().lower().replace(",", "")
    match = _DISTANCE_TOKEN.search(value)
    if not match:
        return None
    amount = float(match.group(1))
    unit = match.group(2)
    if unit.startswith("k"):
        return round(amount * 1000)
    if unit.startswith("mi"):
        return round(amount * 1609.344)
    return round(amount)


def format_minutes(minutes: int) -> str:
    """Render minutes the way the Distance Matrix service does ("1 hour 5 mins")."""
    hours, rest = divmod(int(minutes), 60)
    parts = []
    if hours:
        parts.append(f"{hours} hour" if hours == 1 else f"{hours} hours")
    if rest or not hours:
        parts.append(f"{rest} min" if rest == 1 else f"{rest} mins")
    return " ".join(parts)
