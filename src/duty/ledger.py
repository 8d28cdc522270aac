"""
Correction ledger: manual adjustments expressed as entry-collection edits.

Time corrections never touch an aggregate. They append a synthetic entry
that the parser reads like any other duty log, so the next aggregation
picks it up. Removing an admin is the one destructive operation: it deletes
matching entries from the collection.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional, Sequence, Tuple

from src.core.exceptions import DataValidationError
from src.data.parsers import MANUAL_LICENSE, SUBJECT_PREFIXES, DutyRecordParser, format_duty_text
from src.data.schema import LogEntry

logger = logging.getLogger(__name__)

ADJUSTMENT_HELP = "Provide admin and minutes"
ADMIN_HELP = "Provide admin"

PurgeMatch = Literal["substring", "exact"]


def validate_admin(admin: Any, message: str = ADMIN_HELP) -> str:
    """Require a non-empty admin name."""
    if not admin or not isinstance(admin, str):
        raise DataValidationError(message)
    return admin


def validate_adjustment(admin: Any, minutes: Any) -> Tuple[str, int]:
    """
    Validate an add/remove time request.

    Both values must be truthy, so 0 minutes is rejected along with missing
    values. Minutes may be an int or an integer string.

    Raises:
        DataValidationError: On missing or non-integer input
    """
    if not admin or not minutes:
        raise DataValidationError(ADJUSTMENT_HELP)
    admin = validate_admin(admin, ADJUSTMENT_HELP)

    if isinstance(minutes, bool):
        raise DataValidationError(ADJUSTMENT_HELP)
    if isinstance(minutes, int):
        return admin, minutes
    if isinstance(minutes, str):
        try:
            value = int(minutes.strip())
        except ValueError as e:
            raise DataValidationError("minutes must be a whole number") from e
        if value == 0:
            raise DataValidationError(ADJUSTMENT_HELP)
        return admin, value

    raise DataValidationError("minutes must be a whole number")


def build_adjustment_entry(admin: str, minutes: int, now: Optional[datetime] = None) -> LogEntry:
    """
    Synthesize a correction entry for `admin` worth `minutes` (signed).

    The entry carries the "manual" license and is timestamped now.
    """
    return LogEntry(
        id=f"manual-{uuid.uuid4().hex}",
        timestamp=now or datetime.now(timezone.utc),
        title_text=format_duty_text(admin, MANUAL_LICENSE, minutes),
    )


def add_time(entries: Sequence[LogEntry], admin: str, minutes: int, now: Optional[datetime] = None) -> List[LogEntry]:
    """Return the collection with a positive correction appended."""
    return list(entries) + [build_adjustment_entry(admin, minutes, now)]


def remove_time(entries: Sequence[LogEntry], admin: str, minutes: int, now: Optional[datetime] = None) -> List[LogEntry]:
    """Return the collection with a negated correction appended."""
    return list(entries) + [build_adjustment_entry(admin, -minutes, now)]


def _matches_admin(entry: LogEntry, admin: str, match: PurgeMatch, parser: DutyRecordParser) -> bool:
    if not entry.title_text:
        return False

    if match == "substring":
        # Substring match: "Ana" also hits "Admin: Ana Marija"
        return f"{SUBJECT_PREFIXES[0]} {admin}" in entry.title_text

    record = parser.parse_text(entry.title_text)
    if record is not None:
        return record.subject_name == admin

    # Incomplete entries are matched on their subject lines alone
    for line in entry.title_text.split("\n"):
        for prefix in SUBJECT_PREFIXES:
            if line.startswith(prefix) and line[len(prefix):].strip() == admin:
                return True
    return False


def purge_admin(
    entries: Sequence[LogEntry],
    admin: str,
    match: PurgeMatch = "substring",
) -> Tuple[List[LogEntry], int]:
    """
    Drop every entry that belongs to `admin`.

    Args:
        entries: Current collection
        admin: Admin name
        match: "substring" looks for "Admin: <name>" anywhere in the text;
            "exact" compares the extracted subject name

    Returns:
        Tuple of (kept_entries, removed_count)
    """
    if match not in ("substring", "exact"):
        raise ValueError(f"Unknown purge match mode: {match}")

    parser = DutyRecordParser()
    kept = [e for e in entries if not _matches_admin(e, admin, match, parser)]
    removed = len(entries) - len(kept)
    logger.info(f"Removed {removed} entries for admin {admin!r} ({match} match)")
    return kept, removed
