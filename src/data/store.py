"""
JSON document store for the entry cache and the blacklist.

Two flat documents:
- entries: a list of {"id", "timestamp", "embeds": [{"title": ...}]} objects
- blacklist: a list of admin names

Reads never raise: a missing or malformed entries document reads as None
(no cache, triggering a re-ingest) and a malformed blacklist as empty.
Writes replace the whole document atomically. Locking is the caller's job.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from src.core.exceptions import StoreError
from src.data.normalizers import NormalizationError, normalize_timestamp
from src.data.schema import LogEntry

logger = logging.getLogger(__name__)


def entry_to_document(entry: LogEntry) -> Dict[str, Any]:
    """Persisted shape of a LogEntry."""
    return {
        "id": entry.id,
        "timestamp": entry.timestamp.isoformat().replace("+00:00", "Z"),
        "embeds": [{"title": entry.title_text}] if entry.title_text else [],
    }


def entry_from_document(document: Dict[str, Any]) -> LogEntry:
    """
    Load a persisted entry.

    Raises:
        ValueError: If the document is not a valid entry
    """
    if not isinstance(document, dict):
        raise ValueError(f"Expected object, got {type(document).__name__}")

    embeds = document.get("embeds") or []
    title = None
    if embeds and isinstance(embeds[0], dict):
        title = embeds[0].get("title") or None

    try:
        timestamp = normalize_timestamp(document.get("timestamp"))
    except NormalizationError as e:
        raise ValueError(str(e)) from e

    return LogEntry(id=str(document.get("id") or ""), timestamp=timestamp, title_text=title)


class JsonFileStore:
    """
    File-backed store for entries and blacklist documents.
    """

    def __init__(self, entries_path: Union[str, Path], blacklist_path: Union[str, Path]):
        self.entries_path = Path(entries_path)
        self.blacklist_path = Path(blacklist_path)

    def load_entries(self) -> Optional[List[LogEntry]]:
        """
        Read the entries document.

        Returns:
            List of entries, or None when the document is missing or unusable
        """
        data = self._read_json(self.entries_path)
        if data is None:
            return None

        if not isinstance(data, list):
            logger.error(f"Failed to read {self.entries_path}: expected a list")
            return None

        try:
            return [entry_from_document(item) for item in data]
        except (ValueError, ValidationError) as e:
            logger.error(f"Failed to read {self.entries_path}: {e}")
            return None

    def save_entries(self, entries: Iterable[LogEntry]) -> None:
        """Replace the entries document."""
        self._write_json(self.entries_path, [entry_to_document(e) for e in entries])

    def load_blacklist(self) -> List[str]:
        """
        Read the blacklist document.

        Returns:
            Admin names in stored order; empty if missing or malformed
        """
        data = self._read_json(self.blacklist_path)
        if data is None:
            return []

        if not isinstance(data, list):
            logger.error(f"Failed to read {self.blacklist_path}: expected a list")
            return []

        names: List[str] = []
        for item in data:
            if isinstance(item, str):
                if item not in names:
                    names.append(item)
            else:
                logger.warning(f"Ignoring non-string blacklist item: {item!r}")
        return names

    def save_blacklist(self, names: Iterable[str]) -> None:
        """Replace the blacklist document."""
        self._write_json(self.blacklist_path, list(names))

    def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read {path}: {e}")
            return None

    def _write_json(self, path: Path, data: Any) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}") from e
