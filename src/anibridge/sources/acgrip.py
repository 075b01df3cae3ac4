"""ACG.RIP RSS feed parser."""

from urllib.parse import quote

from .episode import ACGRIP_EPISODE_RULES
from .feed_common import URI_COMPONENT_SAFE, FeedParser


class ACGRIPFeedParser(FeedParser):
    """Parser for the ACG.RIP RSS feed."""

    name = "ACG.RIP"
    episode_rules = ACGRIP_EPISODE_RULES

    def build_url(self, term: str | None = None) -> str:
        if not term:
            return self.base_url
        return f"{self.base_url}?term={quote(term, safe=URI_COMPONENT_SAFE)}"
