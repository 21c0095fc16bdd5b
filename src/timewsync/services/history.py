"""TagHistoryStore: bounded, deduplicating LRU of previously used tag sets.

Tag sets are identified by their canonical key, so ``["work", "project"]``
and ``["project", "work"]`` share one entry. Re-use refreshes the entry's
``last_used_at`` and moves it to the most-recently-used end; inserting a
new key beyond capacity evicts the least-recently-used entry.

The store lives in memory for the engine's lifetime and is mutated only
by the engine's single writer.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from timewsync.domain.state import TagHistoryEntry
from timewsync.domain.tags import canonical_key, dedupe_tags, validate_tags

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TagHistoryStore:
    """Insertion-ordered LRU keyed by canonical tag-set key.

    Parameters:
        capacity: Maximum number of distinct tag sets kept.
        clock: Source of ``last_used_at`` timestamps (injectable for tests).
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if capacity <= 0:
            msg = f"capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        self._clock = clock
        # Least-recently-used first; the MRU entry is at the end.
        self._entries: OrderedDict[str, TagHistoryEntry] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, tags: Sequence[str]) -> bool:
        """Remember *tags* as the most recently used set.

        Empty input is a no-op. Returns True when the history changed.

        Raises:
            InvalidTagError: a tag is empty or contains the key separator.
        """
        raw = dedupe_tags(validate_tags(tags))
        if not raw:
            return False

        key = canonical_key(raw)
        entry = TagHistoryEntry(key=key, raw_tags=raw, last_used_at=self._clock())
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = entry

        while len(self._entries) > self._capacity:
            _, evicted = self._entries.popitem(last=False)
            logger.debug("Evicted tag set %s from history", list(evicted.raw_tags))
        return True

    def list(self) -> list[TagHistoryEntry]:
        """All entries, most recently used first."""
        return list(reversed(self._entries.values()))

    def most_recent(self) -> TagHistoryEntry | None:
        if not self._entries:
            return None
        return next(reversed(self._entries.values()))
