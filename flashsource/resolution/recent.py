"""Recent-URL list: bounded, deduplicated and persisted under one key.

The list is stored as a JSON array of normalized URL strings, oldest first.
Loading never fails: missing or corrupt data yields an empty list. Saving
failures are logged and dropped.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

import structlog
from pydantic import AnyUrl, TypeAdapter, ValidationError

from flashsource.domain.exceptions import PersistenceError
from flashsource.domain.model import RecentUrlEntry
from flashsource.domain.protocols import KeyValueStorage

__all__ = [
    "MAX_RECENT_URLS",
    "RECENT_URLS_KEY",
    "RecentUrlStore",
    "normalize_recent_urls",
    "normalize_url",
]

logger = structlog.get_logger(__name__)

RECENT_URLS_KEY = "recentUrlImages"
MAX_RECENT_URLS = 5

_URL_ADAPTER: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)


def normalize_url(value: Any) -> str | None:
    """Return the normalized href of an absolute URL, or None if invalid."""
    if not isinstance(value, str):
        return None
    try:
        return str(_URL_ADAPTER.validate_python(value.strip()))
    except ValidationError:
        return None


def normalize_recent_urls(raw_values: Any, limit: int = MAX_RECENT_URLS) -> list[RecentUrlEntry]:
    """Validate, deduplicate and truncate a list of URL strings.

    Invalid values are dropped silently. When a URL appears more than once
    its last position wins. Only the ``limit`` most recent entries are kept.

    Example:
        >>> [e.url for e in normalize_recent_urls(["https://a/x.img", "bad", "https://b/y.img", "https://a/x.img"])]
        ['https://b/y.img', 'https://a/x.img']
    """
    if not isinstance(raw_values, (list, tuple)):
        raw_values = []

    hrefs = [href for href in (normalize_url(v) for v in raw_values) if href is not None]

    seen: set[str] = set()
    newest_first: list[str] = []
    for href in reversed(hrefs):
        if href not in seen:
            seen.add(href)
            newest_first.append(href)

    kept = newest_first[:limit] if limit > 0 else []
    return [RecentUrlEntry(href) for href in reversed(kept)]


class RecentUrlStore:
    """Persist the recently used image URLs through a key-value storage."""

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = RECENT_URLS_KEY,
        limit: int = MAX_RECENT_URLS,
    ) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        self.storage = storage
        self.key = key
        self.limit = limit

    def normalize(self, raw_values: Any) -> list[RecentUrlEntry]:
        return normalize_recent_urls(raw_values, self.limit)

    def load(self) -> list[RecentUrlEntry]:
        try:
            raw = self.storage.get(self.key)
            values = json.loads(raw) if raw else []
        except (PersistenceError, ValueError) as exc:
            logger.warning("Could not load recent URLs", key=self.key, error=str(exc))
            return []
        return self.normalize(values)

    def save(self, entries: Iterable[RecentUrlEntry | str]) -> list[RecentUrlEntry]:
        normalized = self.normalize([str(entry) for entry in entries])
        try:
            self.storage.set(self.key, json.dumps([entry.url for entry in normalized]))
        except PersistenceError as exc:
            logger.warning("Could not save recent URLs", key=self.key, error=str(exc))
        return normalized

    def add(self, url: str) -> list[RecentUrlEntry]:
        """Append ``url`` as the most recent entry and persist the list."""
        return self.save([*(entry.url for entry in self.load()), url])

    def clear(self) -> None:
        self.save([])
