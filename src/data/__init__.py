"""
Data module: message ingestion, normalization, duty record extraction,
aggregation, date filters and persistence.

Pipeline:

    Raw channel messages
        ↓
    Ingestion (src/data/ingestion.py)
        ↓
    Normalization (src/data/normalizers.py) → LogEntry
        ↓
    Store (src/data/store.py) ← corrections write back here
        ↓
    Date filters (src/data/query.py), optional
        ↓
    Extraction (src/data/parsers.py) → DutyRecord
        ↓
    Blacklist + aggregation (src/data/aggregation.py) → AggregateStat
"""

from src.data.aggregation import (
    aggregate_entries,
    is_blacklisted,
    sort_by_total,
    summarize_stats,
)
from src.data.ingestion import (
    BaseMessageSource,
    DiscordMessageSource,
    StaticMessageSource,
    fetch_all_messages,
    ingest_messages,
)
from src.data.normalizers import (
    NormalizationError,
    normalize_message,
    normalize_messages,
    normalize_timestamp,
)
from src.data.parsers import (
    DutyRecordParser,
    ParsingError,
    parse_entries,
    parse_entry,
)
from src.data.query import (
    filter_by_date,
    filter_by_range,
    parse_day,
    range_bounds,
)
from src.data.schema import (
    AggregateStat,
    DutyRecord,
    LogEntry,
)
from src.data.store import JsonFileStore

__all__ = [
    # Schema
    "LogEntry",
    "DutyRecord",
    "AggregateStat",

    # Ingestion
    "BaseMessageSource",
    "DiscordMessageSource",
    "StaticMessageSource",
    "fetch_all_messages",
    "ingest_messages",

    # Normalization
    "normalize_message",
    "normalize_messages",
    "normalize_timestamp",
    "NormalizationError",

    # Parsing
    "DutyRecordParser",
    "parse_entry",
    "parse_entries",
    "ParsingError",

    # Aggregation
    "aggregate_entries",
    "is_blacklisted",
    "sort_by_total",
    "summarize_stats",

    # Query
    "filter_by_date",
    "filter_by_range",
    "parse_day",
    "range_bounds",

    # Store
    "JsonFileStore",
]
