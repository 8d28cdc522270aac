"""
Message ingestion from the platform channel.

Pulls the full channel history page by page and normalizes every message
into a LogEntry. Sources are injectable so the engine runs without a live
connection in tests.

Design:
- Sources return raw message dicts, newest first, at most `limit` per call
- Paging walks backwards with an opaque "before" cursor (the oldest id seen)
- The loop ends on an empty page or a page shorter than the limit
- Source failures propagate; there is no retry and no partial result
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import requests

from src.core.exceptions import ConfigurationError, MessageSourceError
from src.data.normalizers import normalize_messages, normalize_timestamp
from src.data.schema import LogEntry

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class BaseMessageSource(ABC):
    """
    Abstract base for message sources.

    Each source returns raw platform messages as dicts with at least "id"
    and "timestamp", plus an optional "embeds" list.
    """

    @abstractmethod
    def fetch_batch(self, before: Optional[str], limit: int) -> List[Dict[str, Any]]:
        """
        Fetch one page of messages.

        Args:
            before: Only return messages older than this id (None for the newest page)
            limit: Maximum number of messages to return

        Returns:
            Messages ordered newest first; empty when history is exhausted

        Raises:
            MessageSourceError: If the source cannot be read
        """
        pass


class DiscordMessageSource(BaseMessageSource):
    """
    Reads channel history through the Discord REST API with a bot token.

    Endpoint:
        GET {api_base}/channels/{channel_id}/messages?limit=100&before=<id>
    """

    def __init__(
        self,
        token: Optional[str],
        channel_id: Optional[str],
        api_base: str = "https://discord.com/api/v10",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Raises:
            ConfigurationError: If token or channel id is missing
        """
        if not token:
            raise ConfigurationError("Discord bot token is not configured")
        if not channel_id:
            raise ConfigurationError("Discord channel id is not configured")

        self.channel_id = str(channel_id)
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bot {token}",
            "User-Agent": "DiscordBot (duty-log, 1.0)",
        })

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/channels/{self.channel_id}/messages"

    def fetch_batch(self, before: Optional[str], limit: int) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"limit": min(limit, MAX_PAGE_SIZE)}
        if before:
            params["before"] = before

        try:
            response = self.session.get(self.messages_url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise MessageSourceError(f"Failed to reach Discord: {e}") from e

        if response.status_code != 200:
            raise MessageSourceError(
                f"Discord returned {response.status_code} for channel {self.channel_id}: "
                f"{response.text[:200]}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise MessageSourceError(f"Discord returned invalid JSON: {e}") from e

        if not isinstance(payload, list):
            raise MessageSourceError("Discord returned an unexpected payload")
        return payload


class StaticMessageSource(BaseMessageSource):
    """
    Serves a fixed list of raw messages, paged like the real channel.

    Useful for tests and for replaying an exported channel offline.
    """

    def __init__(self, messages: Sequence[Dict[str, Any]]):
        self._messages = sorted(
            messages,
            key=lambda m: normalize_timestamp(m.get("timestamp")),
            reverse=True,
        )
        self.calls: List[Optional[str]] = []

    def fetch_batch(self, before: Optional[str], limit: int) -> List[Dict[str, Any]]:
        self.calls.append(before)
        start = 0
        if before is not None:
            ids = [str(m.get("id")) for m in self._messages]
            if before not in ids:
                return []
            start = ids.index(before) + 1
        return list(self._messages[start:start + limit])


def fetch_all_messages(
    source: BaseMessageSource,
    page_size: int = MAX_PAGE_SIZE,
) -> List[Dict[str, Any]]:
    """
    Walk the whole history of a source.

    Returns:
        Raw messages, newest first
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    messages: List[Dict[str, Any]] = []
    before: Optional[str] = None

    while True:
        batch = source.fetch_batch(before, page_size)
        if not batch:
            break

        messages.extend(batch)
        before = str(batch[-1].get("id"))
        logger.info(f"Fetched messages: {len(messages)}")

        if len(batch) < page_size:
            break

    return messages


def ingest_messages(
    source: BaseMessageSource,
    page_size: int = MAX_PAGE_SIZE,
) -> List[LogEntry]:
    """
    Fetch the full history and normalize it into LogEntries.

    Raises:
        MessageSourceError: If any page fails to load
    """
    logger.info("Fetching all messages from the message source...")
    raw_messages = fetch_all_messages(source, page_size)
    entries, skipped = normalize_messages(raw_messages)
    if skipped:
        logger.warning(f"Skipped {skipped} messages that could not be normalized")
    logger.info(f"Ingested {len(entries)} entries")
    return entries
