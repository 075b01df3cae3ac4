"""DMHY RSS feed parser."""

from urllib.parse import quote

from .episode import DMHY_EPISODE_RULES
from .feed_common import URI_COMPONENT_SAFE, FeedParser


class DMHYFeedParser(FeedParser):
    """Parser for the DMHY topics RSS feed."""

    name = "DMHY"
    episode_rules = DMHY_EPISODE_RULES

    def build_url(self, term: str | None = None) -> str:
        """Build the feed URL, with spaces in the keyword encoded as ``+``."""
        if not term:
            return self.base_url
        keyword = quote(term, safe=URI_COMPONENT_SAFE).replace("%20", "+")
        return f"{self.base_url}?keyword={keyword}"
