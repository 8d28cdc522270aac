"""
Per-admin aggregation of duty records.

Folds the DutyRecords extracted from a sequence of LogEntries into one
AggregateStat per admin.

Design:
- Pure function of (entries, blacklist); nothing is cached between calls
- totalMinutes is a signed sum and is never clamped at zero
- lastDuty is the latest timestamp of any contributing entry, including
  entries with negative durations
- license comes from the last contributing record in input order, not
  time order
- Blacklisted admins are skipped here; their entries stay in the collection
"""

import logging
from typing import Collection, Dict, Iterable, List, Optional

from src.data.parsers import DutyRecordParser, parse_entry
from src.data.schema import AggregateStat, LogEntry

logger = logging.getLogger(__name__)


def is_blacklisted(subject_name: str, blacklist: Collection[str]) -> bool:
    """Membership check against the blacklist."""
    return subject_name in blacklist


def aggregate_entries(
    entries: Iterable[LogEntry],
    blacklist: Collection[str] = (),
    parser: Optional[DutyRecordParser] = None,
) -> List[AggregateStat]:
    """
    Aggregate entries into per-admin totals.

    Args:
        entries: LogEntries in any order
        blacklist: Admin names to leave out of the result
        parser: Optional extractor override

    Returns:
        One AggregateStat per admin that contributed at least one valid
        record, in order of first appearance
    """
    blocked = frozenset(blacklist)
    stats: Dict[str, AggregateStat] = {}
    excluded = 0

    for entry in entries:
        record = parse_entry(entry, parser)
        if record is None:
            continue

        if is_blacklisted(record.subject_name, blocked):
            excluded += 1
            continue

        stat = stats.get(record.subject_name)
        if stat is None:
            stat = AggregateStat(
                subject_name=record.subject_name,
                license_id=record.license_id,
            )
            stats[record.subject_name] = stat

        stat.total_minutes += record.duration_minutes
        stat.license_id = record.license_id
        if stat.last_duty_timestamp is None or entry.timestamp > stat.last_duty_timestamp:
            stat.last_duty_timestamp = entry.timestamp

    if excluded:
        logger.debug(f"Excluded {excluded} records of blacklisted admins")

    return list(stats.values())


def sort_by_total(stats: Iterable[AggregateStat]) -> List[AggregateStat]:
    """
    Order stats by totalMinutes, highest first.

    Ties keep their incoming order.
    """
    return sorted(stats, key=lambda s: s.total_minutes, reverse=True)


def summarize_stats(stats: List[AggregateStat]) -> str:
    """
    Create a human-readable summary of aggregated stats.

    Example output:
        3 admins, 540 minutes total
          - Marko: 300 min (last duty 2024-01-02T18:00:00+00:00)
          - Ana: 240 min (last duty 2024-01-01T12:00:00+00:00)
    """
    if not stats:
        return "No admins"

    total = sum(s.total_minutes for s in stats)
    lines = [f"{len(stats)} admins, {total} minutes total"]
    for stat in stats:
        last = stat.last_duty_timestamp.isoformat() if stat.last_duty_timestamp else "never"
        lines.append(f"  - {stat.subject_name}: {stat.total_minutes} min (last duty {last})")

    return "\n".join(lines)
