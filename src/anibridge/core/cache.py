"""Per-keyword result cache in front of a feed parser."""

from collections.abc import Callable
from datetime import datetime

import msgspec

from .. import logger
from ..errors import HttpStatusFailure, NetworkFailure, ParseFailure
from ..sources.feed_common import FeedParser, ParsedReleaseItem

# Key used for the unfiltered feed
ALL_KEY = "all"


class FreshnessPolicy(msgspec.Struct, frozen=True):
    """Freshness rules for keyword cache entries.

    Attributes:
        ttl: Seconds an entry stays valid. Zero refreshes on every lookup.
        refresh_weekday: Weekday (Monday == 0) on which entries written on
            any other weekday are refreshed regardless of ``ttl``.
    """

    ttl: float = 0.0
    refresh_weekday: int | None = None


class CacheEntry(msgspec.Struct, frozen=True):
    """Items fetched for one keyword, with the time they were fetched."""

    items: tuple[ParsedReleaseItem, ...]
    timestamp: float
    last_update_weekday: int


class KeywordCache:
    """Cache of parsed feed items keyed by search term.

    Entries are replaced wholesale on refresh. When a refresh fails and an
    older entry exists, the older entry is served.
    """

    def __init__(
        self,
        parser: FeedParser,
        policy: FreshnessPolicy,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.parser = parser
        self.policy = policy
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def is_valid(self, entry: CacheEntry | None, now: datetime) -> bool:
        """Check whether an entry can be served without refreshing.

        Args:
            entry: Cached entry, if any.
            now: Current local time.

        Returns:
            bool: True if the entry is still fresh.
        """
        if entry is None:
            return False
        if now.timestamp() - entry.timestamp >= self.policy.ttl:
            return False
        refresh_weekday = self.policy.refresh_weekday
        if (
            refresh_weekday is not None
            and now.weekday() == refresh_weekday
            and entry.last_update_weekday != refresh_weekday
        ):
            return False
        return True

    async def get(self, term: str | None = None) -> list[ParsedReleaseItem]:
        """Return items for a search term, refreshing from the feed when stale.

        Args:
            term: Search term. None or empty selects the unfiltered feed.

        Returns:
            list[ParsedReleaseItem]: Items in feed order. Empty when the feed
            cannot be reached or parsed and nothing is cached.

        Raises:
            HttpStatusFailure: If the origin answers with a non-2xx status and
                no cached entry exists.
        """
        key = term or ALL_KEY
        entry = self._entries.get(key)
        now = self._clock()

        if entry is not None and self.is_valid(entry, now):
            logger.debug("Using cached %s results for: %s", self.parser.name, key)
            return list(entry.items)

        url = self.parser.build_url(term)
        try:
            items = await self.parser.fetch(url)
        except (HttpStatusFailure, NetworkFailure, ParseFailure) as e:
            if entry is not None:
                logger.warning(
                    "Failed to refresh %s results for %s, serving stale cache: %s",
                    self.parser.name,
                    key,
                    e,
                )
                return list(entry.items)
            if isinstance(e, HttpStatusFailure):
                raise
            logger.error("Error fetching %s RSS for %s: %s", self.parser.name, key, e)
            return []

        fetched_at = self._clock()
        self._entries[key] = CacheEntry(
            items=tuple(items),
            timestamp=fetched_at.timestamp(),
            last_update_weekday=fetched_at.weekday(),
        )
        logger.debug("Cached %d %s items for: %s", len(items), self.parser.name, key)
        return items
