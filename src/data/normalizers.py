"""
Message normalization: raw platform messages to canonical LogEntry records.

Design:
- Timestamp normalization to UTC datetime
- Title selection from the first embed: its title, or its field values
  joined by newlines when there is no title
- Messages without an embed still produce an entry (with no text); only an
  unreadable timestamp makes a message unusable
- Messages without an id get a stable id derived from their content
- All transformations are deterministic
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from src.data.schema import LogEntry

logger = logging.getLogger(__name__)


class NormalizationError(Exception):
    """Raised when a message cannot be turned into a LogEntry."""
    pass


def normalize_timestamp(value: Any) -> datetime:
    """
    Normalize a timestamp value to a UTC datetime.

    Supports:
    - datetime objects (naive values are taken as UTC)
    - ISO 8601 with Z or an offset: 2024-01-01T10:30:45.123000+00:00
    - Epoch seconds / millis as int, float or numeric string

    Raises:
        NormalizationError: If the value is empty or not recognized
    """
    if value is None or value == "":
        raise NormalizationError("Empty timestamp")

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        dt = _from_epoch(value)
    else:
        text = str(value).strip()
        try:
            seconds = float(text)
        except ValueError:
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            try:
                dt = datetime.fromisoformat(text)
            except ValueError as e:
                raise NormalizationError(f"Could not parse timestamp: {value}") from e
        else:
            dt = _from_epoch(seconds)

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _from_epoch(value: Any) -> datetime:
    try:
        seconds = float(value)
        # Timestamps past year 3000 in seconds are taken to be millis
        if seconds >= 32503680000:
            seconds = seconds / 1000
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise NormalizationError("Epoch timestamp out of range") from e


def select_title(raw_message: Dict[str, Any]) -> Optional[str]:
    """
    Pick the text body of a message from its first embed.

    Returns the embed title if present, otherwise the embed's field values
    joined with newlines, otherwise None.
    """
    embeds = raw_message.get("embeds") or []
    if not embeds or not isinstance(embeds[0], dict):
        return None

    embed = embeds[0]
    if embed.get("title"):
        return str(embed["title"])

    fields = embed.get("fields") or []
    values = [
        str(field.get("value") or "")
        for field in fields
        if isinstance(field, dict)
    ]
    if values:
        return "\n".join(values)
    return None


def _content_id(raw_message: Dict[str, Any]) -> str:
    """Stable id for a message the platform delivered without one."""
    payload = json.dumps(raw_message, sort_keys=True, default=str, ensure_ascii=False)
    return "noid-" + hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]


def normalize_message(raw_message: Dict[str, Any]) -> LogEntry:
    """
    Convert a raw platform message to a canonical LogEntry.

    Args:
        raw_message: Message dict as returned by the message source

    Returns:
        LogEntry (title_text is None when there is nothing to extract)

    Raises:
        NormalizationError: If the message is not a dict or has no usable timestamp
    """
    if not isinstance(raw_message, dict):
        raise NormalizationError(f"Expected dict, got {type(raw_message)}")

    ts_value = raw_message.get("timestamp")
    if ts_value is None:
        ts_value = raw_message.get("created_at")
    timestamp = normalize_timestamp(ts_value)

    message_id = raw_message.get("id")
    if message_id is None:
        message_id = _content_id(raw_message)

    return LogEntry(
        id=str(message_id),
        timestamp=timestamp,
        title_text=select_title(raw_message),
    )


def normalize_messages(
    raw_messages: Iterable[Dict[str, Any]]
) -> Tuple[List[LogEntry], int]:
    """
    Normalize multiple raw messages.

    Returns:
        Tuple of (entries, skipped_count)

    Notes:
        - Messages that fail normalization are skipped and logged
        - Input order is preserved
    """
    entries: List[LogEntry] = []
    skipped = 0

    for raw_message in raw_messages:
        try:
            entries.append(normalize_message(raw_message))
        except NormalizationError as e:
            logger.warning(f"Skipped message during normalization: {e}")
            skipped += 1
        except Exception as e:
            logger.warning(f"Unexpected error normalizing message: {e}")
            skipped += 1

    return entries, skipped
