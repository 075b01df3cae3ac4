"""RSS feed sources for anibridge."""

from .acgrip import ACGRIPFeedParser
from .dmhy import DMHYFeedParser
from .feed_common import FeedParser, ParsedReleaseItem

__all__ = ["ACGRIPFeedParser", "DMHYFeedParser", "FeedParser", "ParsedReleaseItem"]
