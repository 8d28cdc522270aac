"""
Duty record extraction from free-text log entries.

A duty log message looks like:

    Admin: Marko
    Licenca: license:1a2b3c
    Radnja: proveo na dužnosti 45 minuta

Design:
- The text is read line by line; each line is tokenized into at most one
  (field, value) pair by its prefix
- Tokens are folded into a three-field accumulator; when a field appears on
  several lines the last matching line wins
- A DutyRecord is produced only if subject, license and duration are all
  present after the last line
- Missing fields are not errors: the entry is simply not a duty record
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from src.data.schema import DutyRecord, LogEntry

logger = logging.getLogger(__name__)

SUBJECT_PREFIXES = ("Admin:", "Igrač:")
LICENSE_PREFIX = "Licenca:"
ACTION_PREFIX = "Radnja:"

# Literal license written into manual correction entries
MANUAL_LICENSE = "manual"

DURATION_PATTERN = re.compile(r"proveo na dužnosti (-?[0-9]+)\s*minuta", re.IGNORECASE)

SUBJECT = "subject"
LICENSE = "license"
DURATION = "duration"


class ParsingError(Exception):
    """Raised when an entry cannot be handed to the extractor at all."""
    pass


def tokenize_line(line: str) -> Optional[Tuple[str, object]]:
    """
    Classify a single line.

    Returns:
        (SUBJECT, name), (LICENSE, id), (DURATION, minutes) or None for a
        line with no recognized prefix, or an action line without a duration.

    Examples:
        "Admin: Marko"                        -> ("subject", "Marko")
        "Igrač: Marko"                        -> ("subject", "Marko")
        "Radnja: proveo na dužnosti -10 minuta" -> ("duration", -10)
        "Radnja: ušao na dužnost"             -> None
    """
    for prefix in SUBJECT_PREFIXES:
        if line.startswith(prefix):
            return SUBJECT, line[len(prefix):].strip()

    if line.startswith(LICENSE_PREFIX):
        return LICENSE, line[len(LICENSE_PREFIX):].strip()

    if line.startswith(ACTION_PREFIX):
        match = DURATION_PATTERN.search(line[len(ACTION_PREFIX):])
        if match:
            return DURATION, int(match.group(1))

    return None


@dataclass
class _RecordAccumulator:
    """Collects the latest value seen for each of the three fields."""

    subject_name: Optional[str] = None
    license_id: Optional[str] = None
    duration_minutes: Optional[int] = None

    def apply(self, field: str, value: object) -> None:
        # Overwrite unconditionally: last matching line wins
        if field == SUBJECT:
            self.subject_name = value
        elif field == LICENSE:
            self.license_id = value
        elif field == DURATION:
            self.duration_minutes = value

    def is_complete(self) -> bool:
        return bool(self.subject_name) and bool(self.license_id) and self.duration_minutes is not None

    def to_record(self) -> Optional[DutyRecord]:
        if not self.is_complete():
            return None
        return DutyRecord(
            subject_name=self.subject_name,
            license_id=self.license_id,
            duration_minutes=self.duration_minutes,
        )


class DutyRecordParser:
    """
    Extracts DutyRecord fields from a LogEntry's title text.
    """

    def parse_text(self, text: Optional[str]) -> Optional[DutyRecord]:
        """Parse raw title text; None when any required field is missing."""
        if not text:
            return None

        accumulator = _RecordAccumulator()
        for line in text.split("\n"):
            token = tokenize_line(line)
            if token is not None:
                accumulator.apply(*token)

        return accumulator.to_record()

    def parse(self, entry: LogEntry) -> Optional[DutyRecord]:
        """
        Parse a LogEntry.

        Raises:
            ParsingError: If the input is not a LogEntry
        """
        if not isinstance(entry, LogEntry):
            raise ParsingError(f"Expected LogEntry, got {type(entry)}")
        return self.parse_text(entry.title_text)


_default_parser = DutyRecordParser()


def parse_entry(
    entry: LogEntry,
    parser: Optional[DutyRecordParser] = None
) -> Optional[DutyRecord]:
    """
    Extract a DutyRecord from one entry, or None if it is not a duty record.

    Notes:
        - Incomplete entries are logged at debug level only
    """
    parser = parser or _default_parser
    record = parser.parse(entry)
    if record is None:
        logger.debug(f"Entry {entry.id} is not a complete duty record")
    return record


def parse_entries(
    entries: Iterable[LogEntry],
    parser: Optional[DutyRecordParser] = None
) -> Tuple[List[Tuple[LogEntry, DutyRecord]], int]:
    """
    Parse multiple entries, collecting (entry, record) pairs and skip count.

    Example:
        pairs, skipped = parse_entries(entries)
        logger.info(f"Extracted {len(pairs)} duty records, skipped {skipped}")
    """
    pairs: List[Tuple[LogEntry, DutyRecord]] = []
    skipped = 0

    for entry in entries:
        record = parse_entry(entry, parser)
        if record is not None:
            pairs.append((entry, record))
        else:
            skipped += 1

    return pairs, skipped


def format_duty_text(subject_name: str, license_id: str, minutes: int) -> str:
    """Render a duty log text that this parser reads back as the same record."""
    return (
        f"{SUBJECT_PREFIXES[0]} {subject_name}\n"
        f"{LICENSE_PREFIX} {license_id}\n"
        f"{ACTION_PREFIX} proveo na dužnosti {minutes} minuta"
    )
