"""Parsing of schedule times, weekday lists and group capacities."""

import re

from carpool.core.exceptions import (
    InvalidCapacityError,
    InvalidDaysError,
    InvalidTimeFormatError,
)

TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):([0-5][0-9])$")
DAY_PATTERN = re.compile(r"^[1-7]$")


def parse_time(value: str) -> str:
    """Validate a 24-hour ``HH:MM`` time and return it normalised."""
    text = (value or "").strip()
    if not TIME_PATTERN.match(text):
        raise InvalidTimeFormatError(value)
    return text


def parse_days(value: str) -> tuple[int, ...]:
    """Parse ``"1,3,5"`` into sorted unique weekdays (1=Monday..7=Sunday)."""
    parts = [part.strip() for part in (value or "").split(",")]
    if not parts or any(not part for part in parts):
        raise InvalidDaysError(value)

    if not all(DAY_PATTERN.match(part) for part in parts):
        raise InvalidDaysError(value)

    return tuple(sorted({int(part) for part in parts}))


def format_days(days: tuple[int, ...]) -> str:
    return ",".join(str(day) for day in days)


def normalize_days(value: str) -> str:
    """Canonical storage form: sorted, de-duplicated, comma-joined."""
    return format_days(parse_days(value))


def parse_capacity(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidCapacityError(value)
    return value
