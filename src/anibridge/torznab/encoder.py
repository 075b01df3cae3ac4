"""Torznab XML encoding.

Builds the RSS, capabilities and error documents served to Torznab clients
such as Sonarr and Prowlarr.
"""

import re
from collections.abc import Iterable, Sequence

import msgspec
from lxml import etree

from ..sources.feed_common import ParsedReleaseItem
from .categories import CategoryClassifier

ATOM_NS = "http://www.w3.org/2005/Atom"
TORZNAB_NS = "http://torznab.com/schemas/2015/feed"
NSMAP = {"atom": ATOM_NS, "torznab": TORZNAB_NS}

TORRENT_MIME_TYPE = "application/x-bittorrent"

MOCK_TITLE_TEMPLATE = "[{tag}-Test][One Piece 海賊王][1151][1080p][WEB-RIP][CHT][SRT][MKV]"
MOCK_MAGNET_URL = "magnet:?xt=urn:btih:TESTMOCKDATA1234567890ABCDEFGHIJKLMNOPQRSTUVWXYZ"
MOCK_PUB_DATE = "Mon, 01 Jan 2024 00:00:00 GMT"
MOCK_SIZE = 1024000000
MOCK_EPISODE = 1151
MOCK_DESCRIPTION = (
    "Mock test item for Newznab Indexer - "
    "This is a test entry to verify category configuration"
)

# Characters that cannot appear in an XML 1.0 document
_INVALID_XML_CHARS_RE = re.compile(
    r"[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


class TorznabEnclosure(msgspec.Struct):
    url: str
    type: str = TORRENT_MIME_TYPE
    length: int | None = None


class NormalizedTorznabItem(msgspec.Struct):
    """A release ready to be written as a Torznab ``<item>``.

    Attributes:
        title: Release title.
        link: Link element value, the magnet or torrent URL.
        guid: Item identifier.
        pub_date: Publication date.
        enclosure: Download reference.
        size: Size in bytes, written only when positive.
        description: Optional description.
        attributes: Ordered ``torznab:attr`` name/value pairs.
    """

    title: str
    link: str
    guid: str
    pub_date: str
    enclosure: TorznabEnclosure
    size: int | None = None
    description: str | None = None
    attributes: list[tuple[str, str]] = msgspec.field(default_factory=list)


class ChannelMetadata(msgspec.Struct):
    title: str
    description: str
    link: str
    language: str | None = None
    web_master: str | None = None
    category: str | None = None
    image_url: str | None = None
    atom_href: str | None = None


class SearchCapability(msgspec.Struct):
    tag: str
    available: bool
    supported_params: str | None = None


class TorznabCategory(msgspec.Struct):
    id: str
    name: str
    subcats: list["TorznabCategory"] = msgspec.field(default_factory=list)


class TorznabCapabilities(msgspec.Struct):
    """Content of the ``t=caps`` document."""

    server_title: str
    server_version: str = "1.0"
    limit_max: int = 100
    limit_default: int = 50
    retention_days: int | None = 365
    registration_available: bool = False
    registration_open: bool = False
    searching: list[SearchCapability] = msgspec.field(default_factory=list)
    categories: list[TorznabCategory] = msgspec.field(default_factory=list)


INDEXER_TITLE = "AniBridge Indexer"

DEFAULT_CAPABILITIES = TorznabCapabilities(
    server_title=INDEXER_TITLE,
    searching=[
        SearchCapability("search", True, "q"),
        SearchCapability("tv-search", True, "q,season,ep"),
        SearchCapability("movie-search", False),
        SearchCapability("audio-search", False),
    ],
    categories=[
        TorznabCategory(
            "5000",
            "TV",
            subcats=[
                TorznabCategory("5030", "TV/SD"),
                TorznabCategory("5040", "TV/HD"),
                TorznabCategory("5060", "TV/UHD"),
                TorznabCategory("5070", "TV/Anime"),
            ],
        )
    ],
)


def build_channel_metadata(source: str, base_url: str) -> ChannelMetadata:
    """Channel metadata for a source's RSS responses.

    Args:
        source: Source name as used in the indexer path.
        base_url: Public base URL of this server, without trailing slash.
    """
    return ChannelMetadata(
        title=INDEXER_TITLE,
        description="Torznab API Indexer",
        link=base_url,
        language="zh-cn",
        category="TV",
        image_url=f"{base_url}/favicon.ico",
        atom_href=f"{base_url}/api/indexer/{source}",
    )


def _xml_text(value: str) -> str:
    return _INVALID_XML_CHARS_RE.sub("", value)


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def _sub_text(
    parent: etree._Element, tag: str, text: str, cdata: bool = False
) -> etree._Element:
    element = etree.SubElement(parent, tag)
    text = _xml_text(text)
    # A CDATA section cannot contain its own terminator; plain text is escaped instead
    element.text = etree.CDATA(text) if cdata and "]]>" not in text else text
    return element


def _serialize(root: etree._Element) -> str:
    return etree.tostring(
        root, xml_declaration=True, encoding="UTF-8", pretty_print=True
    ).decode("utf-8")


def _torznab(tag: str) -> str:
    return f"{{{TORZNAB_NS}}}{tag}"


def encode_rss(
    items: Sequence[NormalizedTorznabItem],
    channel: ChannelMetadata,
    offset: int = 0,
) -> str:
    """Encode items as a Torznab RSS 2.0 document.

    Args:
        items: Items in output order.
        channel: Channel metadata.
        offset: Paging offset reported in ``torznab:response``.

    Returns:
        str: UTF-8 XML document with declaration.
    """
    rss = etree.Element("rss", version="2.0", nsmap=NSMAP)
    channel_el = etree.SubElement(rss, "channel")
    _sub_text(channel_el, "title", channel.title)
    _sub_text(channel_el, "description", channel.description)
    _sub_text(channel_el, "link", channel.link)
    etree.SubElement(
        channel_el, _torznab("response"), offset=str(offset), total=str(len(items))
    )

    if channel.language:
        _sub_text(channel_el, "language", channel.language)
    if channel.web_master:
        _sub_text(channel_el, "webMaster", channel.web_master)
    if channel.category:
        _sub_text(channel_el, "category", channel.category)
    if channel.image_url:
        etree.SubElement(
            channel_el,
            "image",
            url=channel.image_url,
            title=channel.title,
            link=channel.link,
            description=channel.description,
        )
    if channel.atom_href:
        etree.SubElement(
            channel_el,
            f"{{{ATOM_NS}}}link",
            href=channel.atom_href,
            rel="self",
            type="application/rss+xml",
        )

    for item in items:
        item_el = etree.SubElement(channel_el, "item")
        _sub_text(item_el, "title", item.title, cdata=True)
        _sub_text(item_el, "guid", item.guid).set("isPermaLink", "true")
        _sub_text(item_el, "link", item.link, cdata=True)
        _sub_text(item_el, "pubDate", item.pub_date)
        if item.description:
            _sub_text(item_el, "description", item.description, cdata=True)
        # Sonarr expects size before the enclosure
        if item.size and item.size > 0:
            _sub_text(item_el, "size", str(item.size))

        enclosure = etree.SubElement(
            item_el,
            "enclosure",
            url=_xml_text(item.enclosure.url),
            type=item.enclosure.type or TORRENT_MIME_TYPE,
        )
        if item.enclosure.length and item.enclosure.length > 0:
            enclosure.set("length", str(item.enclosure.length))

        for name, value in item.attributes:
            etree.SubElement(
                item_el, _torznab("attr"), name=name, value=_xml_text(value)
            )

    return _serialize(rss)


def encode_caps(capabilities: TorznabCapabilities = DEFAULT_CAPABILITIES) -> str:
    """Encode the capabilities document answered to ``t=caps``."""
    caps = etree.Element("caps")
    etree.SubElement(
        caps,
        "server",
        version=capabilities.server_version,
        title=capabilities.server_title,
    )
    etree.SubElement(
        caps,
        "limits",
        max=str(capabilities.limit_max),
        default=str(capabilities.limit_default),
    )
    if capabilities.retention_days is not None:
        etree.SubElement(caps, "retention", days=str(capabilities.retention_days))
    etree.SubElement(
        caps,
        "registration",
        available=_yes_no(capabilities.registration_available),
        open=_yes_no(capabilities.registration_open),
    )

    searching = etree.SubElement(caps, "searching")
    for search in capabilities.searching:
        search_el = etree.SubElement(
            searching, search.tag, available=_yes_no(search.available)
        )
        if search.supported_params:
            search_el.set("supportedParams", search.supported_params)

    categories = etree.SubElement(caps, "categories")
    for category in capabilities.categories:
        category_el = etree.SubElement(
            categories, "category", id=category.id, name=category.name
        )
        for subcat in category.subcats:
            etree.SubElement(category_el, "subcat", id=subcat.id, name=subcat.name)

    return _serialize(caps)


def encode_error(code: int, description: str) -> str:
    """Encode a Torznab ``<error>`` document."""
    error = etree.Element("error", code=str(code), description=_xml_text(description))
    return _serialize(error)


def _torznab_attributes(
    title: str,
    classifier: CategoryClassifier,
    season: int,
    episode: int,
    absolute: int,
) -> list[tuple[str, str]]:
    attributes = [("category", cat) for cat in classifier.detect_categories(title)]
    attributes.extend(
        [
            ("series", classifier.extract_series_name(title)),
            ("season", str(max(season, 1))),
            ("episode", str(episode)),
            ("absolute", str(absolute)),
            # Volume factors for magnet links
            ("downloadvolumefactor", "0"),
            ("uploadvolumefactor", "1"),
        ]
    )
    return attributes


def to_torznab_items(
    items: Iterable[ParsedReleaseItem],
    classifier: CategoryClassifier,
    season: int = 1,
    episode: int | None = None,
    absolute: int | None = None,
) -> list[NormalizedTorznabItem]:
    """Convert parsed releases to Torznab items.

    Args:
        items: Parsed releases.
        classifier: Classifier for the releases' source.
        season: Season number, clamped to at least 1.
        episode: Episode number to report. Defaults to each item's own
            episode, or 1 when unknown.
        absolute: Absolute episode number to report. Defaults to the
            reported episode.

    Returns:
        list[NormalizedTorznabItem]: Items in input order.
    """
    normalized = []
    for item in items:
        if episode is not None:
            episode_num = episode
        elif item.episode is not None:
            episode_num = item.episode
        else:
            episode_num = 1
        absolute_num = absolute if absolute is not None else episode_num

        normalized.append(
            NormalizedTorznabItem(
                title=item.title,
                link=item.resource_url,
                guid=item.guid,
                pub_date=item.pub_date,
                enclosure=TorznabEnclosure(url=item.resource_url, length=item.size),
                size=item.size,
                attributes=_torznab_attributes(
                    item.title, classifier, season, episode_num, absolute_num
                ),
            )
        )
    return normalized


def generate_mock_item(
    source: str, base_url: str, classifier: CategoryClassifier, tag: str | None = None
) -> NormalizedTorznabItem:
    """Build the fixed test release answered to queries without a term.

    Indexer managers send such queries when validating the indexer.

    Args:
        source: Source name as used in the indexer path.
        base_url: Public base URL of this server.
        classifier: Classifier for the source.
        tag: Group tag used in the mock title. Defaults to ``source`` upper-cased.

    Returns:
        NormalizedTorznabItem: The mock release.
    """
    title = MOCK_TITLE_TEMPLATE.format(tag=tag or source.upper())
    return NormalizedTorznabItem(
        title=title,
        link=MOCK_MAGNET_URL,
        guid=f"{base_url}/api/indexer/{source}/test-mock-guid",
        pub_date=MOCK_PUB_DATE,
        enclosure=TorznabEnclosure(url=MOCK_MAGNET_URL, length=MOCK_SIZE),
        size=MOCK_SIZE,
        description=MOCK_DESCRIPTION,
        attributes=_torznab_attributes(
            title, classifier, 1, MOCK_EPISODE, MOCK_EPISODE
        ),
    )
