"""
Pytest configuration and shared fixtures.

Provides sample channel messages, a store rooted in a temp directory, and an
engine wired to an in-memory message source.
"""

import pytest
from datetime import datetime, timezone
from typing import Any, Dict, List

from src.data.ingestion import StaticMessageSource
from src.data.parsers import format_duty_text
from src.data.schema import LogEntry
from src.data.store import JsonFileStore
from src.duty.engine import DutyLogEngine


def make_message(
    message_id: str,
    timestamp: str,
    admin: str = "A",
    license_id: str = "L1",
    minutes: int = 30,
) -> Dict[str, Any]:
    """Raw channel message carrying a duty log embed."""
    return {
        "id": message_id,
        "timestamp": timestamp,
        "embeds": [{"title": format_duty_text(admin, license_id, minutes)}],
    }


def make_entry(
    entry_id: str,
    timestamp: datetime,
    admin: str = "A",
    license_id: str = "L1",
    minutes: int = 30,
) -> LogEntry:
    """LogEntry carrying a complete duty record."""
    return LogEntry(
        id=entry_id,
        timestamp=timestamp,
        title_text=format_duty_text(admin, license_id, minutes),
    )


@pytest.fixture
def sample_messages() -> List[Dict[str, Any]]:
    """
    Realistic channel history, newest first like the platform returns it.

    Contains two admins, a message without embed and a status message with
    no duration.
    """
    return [
        make_message("1005", "2024-01-02T18:00:00.000000+00:00", admin="B", license_id="LB", minutes=15),
        {
            "id": "1004",
            "timestamp": "2024-01-02T09:00:00+00:00",
            "embeds": [{"title": "Admin: A\nLicenca: L1\nRadnja: ušao na dužnost"}],
        },
        {"id": "1003", "timestamp": "2024-01-01T20:00:00+00:00", "content": "hello", "embeds": []},
        make_message("1002", "2024-01-01T12:00:00+00:00", admin="B", license_id="LB", minutes=45),
        make_message("1001", "2024-01-01T10:00:00+00:00", admin="A", license_id="L1", minutes=30),
    ]


@pytest.fixture
def store(tmp_path) -> JsonFileStore:
    """Store writing to a temp directory."""
    return JsonFileStore(tmp_path / "cache.json", tmp_path / "blacklist.json")


@pytest.fixture
def source(sample_messages) -> StaticMessageSource:
    return StaticMessageSource(sample_messages)


@pytest.fixture
def engine(store, source) -> DutyLogEngine:
    """Engine over the sample history and an empty temp store."""
    return DutyLogEngine(store=store, source=source)


@pytest.fixture
def message_factory():
    return make_message


@pytest.fixture
def entry_factory():
    return make_entry


@pytest.fixture
def utc():
    """Shorthand for building UTC datetimes."""
    def _utc(*args) -> datetime:
        return datetime(*args, tzinfo=timezone.utc)
    return _utc


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (deferred CI)"
    )
