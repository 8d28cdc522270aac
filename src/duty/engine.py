"""
Duty log engine: single owner of the entry collection and the blacklist.

Every API operation maps to one method here. Writes are read-modify-write
cycles over whole documents (load, edit in memory, save), so each resource
has its own lock and every cycle runs under it; two concurrent add-time
calls can no longer overwrite each other.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, List, Optional

from src.core.config import Config, config
from src.data.aggregation import aggregate_entries, sort_by_total, summarize_stats
from src.data.ingestion import MAX_PAGE_SIZE, BaseMessageSource, DiscordMessageSource, ingest_messages
from src.data.query import filter_by_date, filter_by_range, parse_day, range_bounds
from src.data.schema import AggregateStat, LogEntry
from src.data.store import JsonFileStore

from . import ledger

logger = logging.getLogger(__name__)


@dataclass
class DutyLogEngine:
    """
    Duty time aggregation over a persisted entry collection.

    Notes:
    - The entry cache is loaded lazily; when it is missing or unreadable the
      full channel history is fetched from the source and persisted.
    - Aggregates are recomputed on every query and never stored.
    - rescan() replaces the cache with a fresh fetch, which also drops
      manual corrections and undoes purges.
    """

    store: JsonFileStore
    source: BaseMessageSource
    page_size: int = MAX_PAGE_SIZE
    purge_match: ledger.PurgeMatch = "substring"
    _entries_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _blacklist_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    # Entries

    def _fetch_and_store(self) -> List[LogEntry]:
        entries = ingest_messages(self.source, self.page_size)
        self.store.save_entries(entries)
        logger.info(f"All messages cached to {self.store.entries_path}")
        return entries

    def _load_or_fetch(self) -> List[LogEntry]:
        entries = self.store.load_entries()
        if entries is None:
            entries = self._fetch_and_store()
        return entries

    def get_entries(self) -> List[LogEntry]:
        """Current entry collection (fetching it on first use)."""
        with self._entries_lock:
            return self._load_or_fetch()

    def _aggregate(self, entries: List[LogEntry]) -> List[AggregateStat]:
        return sort_by_total(aggregate_entries(entries, self.get_blacklist()))

    # Queries

    def list_admins(self) -> List[AggregateStat]:
        """All admins, highest total first."""
        return self._aggregate(self.get_entries())

    def rescan(self) -> List[AggregateStat]:
        """Re-fetch the full history, replace the cache and aggregate it."""
        with self._entries_lock:
            entries = self._fetch_and_store()
        stats = self._aggregate(entries)
        logger.info(summarize_stats(stats))
        return stats

    def admins_by_date(self, day: Any) -> List[AggregateStat]:
        """
        Admins with duty records on one UTC day.

        Raises:
            DataValidationError: If day is not YYYY-MM-DD
        """
        target = parse_day(day)
        return self._aggregate(filter_by_date(self.get_entries(), target))

    def admins_in_range(self, start: Any, end: Any) -> List[AggregateStat]:
        """
        Admins with duty records between two UTC days, both inclusive.

        Raises:
            DataValidationError: If either bound is missing or malformed
        """
        start_time, end_time = range_bounds(start, end)
        return self._aggregate(filter_by_range(self.get_entries(), start_time, end_time))

    # Corrections

    def add_time(self, admin: Any, minutes: Any) -> bool:
        admin, minutes = ledger.validate_adjustment(admin, minutes)
        with self._entries_lock:
            entries = ledger.add_time(self._load_or_fetch(), admin, minutes)
            self.store.save_entries(entries)
        logger.info(f"Added {minutes} minutes for {admin!r}")
        return True

    def remove_time(self, admin: Any, minutes: Any) -> bool:
        admin, minutes = ledger.validate_adjustment(admin, minutes)
        with self._entries_lock:
            entries = ledger.remove_time(self._load_or_fetch(), admin, minutes)
            self.store.save_entries(entries)
        logger.info(f"Removed {minutes} minutes for {admin!r}")
        return True

    def remove_admin(self, admin: Any) -> bool:
        """Delete every entry of an admin from the collection."""
        admin = ledger.validate_admin(admin)
        with self._entries_lock:
            entries, _ = ledger.purge_admin(self._load_or_fetch(), admin, self.purge_match)
            self.store.save_entries(entries)
        return True

    # Blacklist

    def get_blacklist(self) -> List[str]:
        with self._blacklist_lock:
            return self.store.load_blacklist()

    def blacklist_admin(self, admin: Any) -> List[str]:
        """Add an admin to the blacklist; returns the current list."""
        admin = ledger.validate_admin(admin)
        with self._blacklist_lock:
            names = self.store.load_blacklist()
            if admin not in names:
                names.append(admin)
                self.store.save_blacklist(names)
                logger.info(f"Blacklisted {admin!r}")
            return names

    def unblacklist_admin(self, admin: Any) -> List[str]:
        """Remove an admin from the blacklist; returns the current list."""
        admin = ledger.validate_admin(admin)
        with self._blacklist_lock:
            names = [n for n in self.store.load_blacklist() if n != admin]
            self.store.save_blacklist(names)
            return names


def create_engine(
    settings: Optional[Config] = None,
    source: Optional[BaseMessageSource] = None,
) -> DutyLogEngine:
    """
    Build an engine from configuration.

    Uses the Discord channel from settings unless a source is injected.
    """
    settings = settings or config
    if source is None:
        source = DiscordMessageSource(
            token=settings.discord_token,
            channel_id=settings.channel_id,
            api_base=settings.discord_api_base,
            timeout=settings.request_timeout,
        )
    store = JsonFileStore(settings.cache_path, settings.blacklist_path)
    return DutyLogEngine(
        store=store,
        source=source,
        page_size=settings.page_size,
        purge_match=settings.purge_match,
    )
