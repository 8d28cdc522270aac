"""
Date filters applied to the entry collection before aggregation.

Both filters work on UTC calendar days:
- exact date: the entry's UTC date equals the requested day
- range: from <day> 00:00:00Z through <day> 23:59:59Z, both ends inclusive
"""

import re
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, List, Tuple

from src.core.exceptions import DataValidationError
from src.data.schema import LogEntry

_DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

RANGE_HELP = "Provide from and to dates in YYYY-MM-DD format"

_START_OF_DAY = time(0, 0, 0, tzinfo=timezone.utc)
_END_OF_DAY = time(23, 59, 59, tzinfo=timezone.utc)


def parse_day(value: Any, message: str = "Provide a date in YYYY-MM-DD format") -> date:
    """
    Parse a strict YYYY-MM-DD string.

    Raises:
        DataValidationError: If the value is missing or not a valid calendar day
    """
    if not value or not isinstance(value, str) or not _DAY_PATTERN.match(value):
        raise DataValidationError(message)
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise DataValidationError(message) from e


def range_bounds(start: Any, end: Any) -> Tuple[datetime, datetime]:
    """
    Inclusive UTC bounds for a from/to day pair.

    Raises:
        DataValidationError: If either bound is missing or malformed
    """
    start_day = parse_day(start, RANGE_HELP)
    end_day = parse_day(end, RANGE_HELP)
    return (
        datetime.combine(start_day, _START_OF_DAY),
        datetime.combine(end_day, _END_OF_DAY),
    )


def filter_by_date(entries: Iterable[LogEntry], day: date) -> List[LogEntry]:
    """Keep entries whose UTC calendar date is `day`."""
    return [e for e in entries if e.timestamp.astimezone(timezone.utc).date() == day]


def filter_by_range(
    entries: Iterable[LogEntry],
    start_time: datetime,
    end_time: datetime,
) -> List[LogEntry]:
    """
    Keep entries with start_time <= timestamp <= end_time.

    An inverted range yields an empty list.
    """
    return [e for e in entries if start_time <= e.timestamp <= end_time]
