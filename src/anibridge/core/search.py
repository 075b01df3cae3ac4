"""Query facade over a keyword cache."""

from ..sources.feed_common import ParsedReleaseItem
from .cache import KeywordCache


class QueryFacade:
    """Term and episode queries against one source."""

    def __init__(self, cache: KeywordCache) -> None:
        self.cache = cache

    @property
    def name(self) -> str:
        return self.cache.parser.name

    async def search_by_term(self, term: str | None = None) -> list[ParsedReleaseItem]:
        """Return every cached or fetched item for ``term``, in feed order."""
        return await self.cache.get(term)

    async def search_by_keyword(
        self, term: str | None = None
    ) -> list[ParsedReleaseItem]:
        return await self.search_by_term(term)

    async def search_by_query(self, term: str | None = None) -> list[ParsedReleaseItem]:
        return await self.search_by_term(term)

    async def search_by_episode(
        self, term: str | None, episode: int
    ) -> list[ParsedReleaseItem]:
        """Return items for ``term`` whose extracted episode equals ``episode``.

        Items with no known episode never match.

        Args:
            term: Search term.
            episode: Episode number to match exactly.

        Returns:
            list[ParsedReleaseItem]: Matching items in feed order.
        """
        items = await self.search_by_term(term)
        return [item for item in items if item.episode == episode]
