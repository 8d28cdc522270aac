"""
Integration test for the full duty log pipeline.

Tests end-to-end flow from raw channel messages to sorted admin totals,
through the file store.
"""

import json

import pytest

from src.data.aggregation import aggregate_entries, sort_by_total
from src.data.ingestion import StaticMessageSource, ingest_messages
from src.data.parsers import parse_entries
from src.data.query import filter_by_range, range_bounds
from src.data.store import JsonFileStore
from src.duty.ledger import add_time, purge_admin, remove_time

pytestmark = pytest.mark.integration


class TestFullPipeline:
    """Test end-to-end pipeline from raw messages to stats."""

    def test_messages_to_stats(self, sample_messages, tmp_path):
        """Test full pipeline with a channel export."""
        export = tmp_path / "export.json"
        export.write_text(json.dumps(sample_messages, ensure_ascii=False), encoding="utf-8")
        raw = json.loads(export.read_text(encoding="utf-8"))

        # Step 1: Ingest
        entries = ingest_messages(StaticMessageSource(raw), page_size=2)
        assert len(entries) == 5

        # Step 2: Persist and reload
        store = JsonFileStore(tmp_path / "cache.json", tmp_path / "blacklist.json")
        store.save_entries(entries)
        reloaded = store.load_entries()
        assert reloaded == entries

        # Step 3: Extract
        pairs, skipped = parse_entries(reloaded)
        assert len(pairs) == 3
        assert skipped == 2

        # Step 4: Aggregate
        stats = sort_by_total(aggregate_entries(reloaded, store.load_blacklist()))
        assert [(s.subject_name, s.total_minutes) for s in stats] == [("B", 60), ("A", 30)]

    def test_corrections_and_filters(self, sample_messages, tmp_path, utc):
        """Test corrections flowing through the store into filtered stats."""
        store = JsonFileStore(tmp_path / "cache.json", tmp_path / "blacklist.json")
        store.save_entries(ingest_messages(StaticMessageSource(sample_messages)))

        entries = add_time(store.load_entries(), "A", 20, now=utc(2024, 1, 2, 8, 0))
        entries = remove_time(entries, "B", 100, now=utc(2024, 1, 3, 8, 0))
        store.save_entries(entries)
        store.save_blacklist([])

        all_stats = {s.subject_name: s for s in aggregate_entries(store.load_entries())}
        assert all_stats["A"].total_minutes == 50
        assert all_stats["B"].total_minutes == -40
        assert all_stats["B"].last_duty_timestamp == utc(2024, 1, 3, 8, 0)

        start, end = range_bounds("2024-01-02", "2024-01-02")
        day_two = {s.subject_name: s.total_minutes for s in aggregate_entries(filter_by_range(store.load_entries(), start, end))}
        assert day_two == {"A": 20, "B": 15}

        kept, removed = purge_admin(store.load_entries(), "B")
        assert removed == 3
        assert [s.subject_name for s in aggregate_entries(kept)] == ["A"]
