"""
RSS feed source base module for anibridge.

Provides the base parser class and the common types shared by the
site-specific feed parsers.
"""

from abc import ABC, abstractmethod
from xml.etree.ElementTree import Element

import msgspec
from defusedxml import DefusedXmlException, ElementTree
from humanfriendly import format_size

from .. import logger
from ..errors import MissingResourceReference, ParseFailure
from ..fetcher import CachedFetcher
from .episode import EpisodeRule, extract_episode

RSS_HEADERS = {
    "accept": "application/xhtml+xml,application/xml;",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/58.0.3029.110 Safari/537.3"
    ),
}

# Characters left unescaped in query values, besides letters, digits and "_.-~"
URI_COMPONENT_SAFE = "!'()*"

# Per-request cache duration for feed fetches, in seconds
FEED_CACHE_DURATION = 60.0


class ParsedReleaseItem(msgspec.Struct, frozen=True):
    """A release extracted from one feed item.

    Attributes:
        title: Release title as published.
        link: Page URL of the release.
        resource_url: Magnet or torrent URL. Never empty.
        pub_date: Publication date string as published.
        guid: Item identifier.
        episode: Episode number, None when the title carries none.
        size: Size in bytes, when the feed reports a positive value.
        author: Uploader name, if present.
        category: Feed category, if present.
    """

    title: str
    link: str
    resource_url: str
    pub_date: str
    guid: str
    episode: int | None = None
    size: int | None = None
    author: str | None = None
    category: str | None = None


def element_text(parent: Element, tag: str) -> str:
    """Return the stripped text of a child element, or an empty string.

    CDATA sections are already unwrapped by the XML parser.
    """
    child = parent.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def parse_positive_int(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value > 0 else None


class FeedParser(ABC):
    """Base class for site RSS feeds, containing common parsing logic."""

    name: str = ""
    episode_rules: tuple[EpisodeRule, ...] = ()

    def __init__(self, fetcher: CachedFetcher, base_url: str) -> None:
        self.fetcher = fetcher
        self.base_url = base_url

    @abstractmethod
    def build_url(self, term: str | None = None) -> str:
        """Build the feed URL for a search term - subclasses define the query format.

        Args:
            term: Search term. None or empty selects the unfiltered feed.

        Returns:
            Feed URL.
        """

    def extract_episode(self, title: str) -> int | None:
        return extract_episode(title, self.episode_rules)

    async def fetch(self, url: str) -> list[ParsedReleaseItem]:
        """Fetch and parse a feed.

        Args:
            url: Feed URL.

        Returns:
            Parsed items in feed order. Items without a resource URL or that
            fail to parse are dropped.

        Raises:
            HttpStatusFailure: If the origin answers with a non-2xx status.
            NetworkFailure: If the origin cannot be reached.
            ParseFailure: If the document is not well-formed XML.
        """
        logger.info("Fetching %s RSS from: %s", self.name, url)
        content = await self.fetcher.get(
            url, headers=RSS_HEADERS, cache_duration=FEED_CACHE_DURATION
        )
        return self.parse_feed(content)

    def parse_feed(self, content: bytes | str) -> list[ParsedReleaseItem]:
        """Parse raw feed content into release items.

        Args:
            content: Feed document, bytes are decoded as UTF-8.

        Returns:
            list[ParsedReleaseItem]: Parsed items in feed order.

        Raises:
            ParseFailure: If the document cannot be decoded or parsed.
        """
        try:
            text = content.decode("utf-8") if isinstance(content, bytes) else content
            root = ElementTree.fromstring(text)
        except (UnicodeDecodeError, ElementTree.ParseError, DefusedXmlException) as e:
            raise ParseFailure(f"Invalid {self.name} feed document: {e}") from e

        channel = root.find("channel")
        # findall always yields a list, even for single-item feeds
        items = channel.findall("item") if channel is not None else []
        if not items:
            logger.warning("No items found in %s RSS feed", self.name)
            return []

        parsed_items = []
        for item in items:
            try:
                parsed_items.append(self.parse_item(item))
            except MissingResourceReference as e:
                logger.warning("%s", e)
            except Exception as e:
                logger.error("Error parsing %s RSS item: %s", self.name, e)

        total_size = sum(item.size or 0 for item in parsed_items)
        logger.info(
            "Parsed %d items from %s RSS feed (%s)",
            len(parsed_items),
            self.name,
            format_size(total_size, binary=True),
        )
        return parsed_items

    def parse_item(self, item: Element) -> ParsedReleaseItem:
        """Parse a single ``<item>`` element.

        Args:
            item: The item element.

        Returns:
            ParsedReleaseItem: The parsed release.

        Raises:
            MissingResourceReference: If the item has no magnet/torrent URL.
        """
        title = element_text(item, "title")

        enclosure = item.find("enclosure")
        resource_url = ""
        raw_length = None
        if enclosure is not None:
            resource_url = (enclosure.get("url") or "").strip()
            if not resource_url:
                resource_url = element_text(enclosure, "url")
            raw_length = enclosure.get("length") or element_text(enclosure, "length")

        if not resource_url:
            raise MissingResourceReference(
                f"No magnet/torrent URL found for {self.name} item: {title}"
            )

        return ParsedReleaseItem(
            title=title,
            link=element_text(item, "link"),
            resource_url=resource_url,
            pub_date=element_text(item, "pubDate"),
            guid=element_text(item, "guid"),
            episode=self.extract_episode(title),
            size=parse_positive_int(raw_length),
            author=element_text(item, "author") or None,
            category=element_text(item, "category") or None,
        )
