"""Shared test fixtures and configuration for anibridge tests."""

from contextlib import asynccontextmanager

import anyio
import pytest

import anibridge.logger as logger_module

SAMPLE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Sample Feed</title>
    <link>https://example.org</link>
    <item>
      <title><![CDATA[[Skymoon-Raws][One Piece 海賊王][1151][ViuTV][WEB-RIP][CHT][SRT][1080p][MKV]]]></title>
      <link>https://example.org/topics/view/1151</link>
      <pubDate>Sun, 19 Oct 2025 12:00:00 +0800</pubDate>
      <guid>https://example.org/topics/view/1151</guid>
      <author><![CDATA[Laputa]]></author>
      <category><![CDATA[動畫]]></category>
      <enclosure url="magnet:?xt=urn:btih:AAAA1151&amp;dn=one-piece" length="1234567890" type="application/x-bittorrent"/>
    </item>
    <item>
      <title><![CDATA[[Other][Not One Piece][100][WEB-RIP][1080p]]]></title>
      <link>https://example.org/topics/view/100</link>
      <pubDate>Sun, 19 Oct 2025 11:00:00 +0800</pubDate>
      <guid>https://example.org/topics/view/100</guid>
      <enclosure url="magnet:?xt=urn:btih:BBBB0100" type="application/x-bittorrent"/>
    </item>
    <item>
      <title><![CDATA[[Skymoon-Raws][One Piece 海賊王][1152][ViuTV][WEB-RIP][CHT][SRT][1080p][MKV]]]></title>
      <link>https://example.org/topics/view/1152</link>
      <pubDate>Sun, 26 Oct 2025 12:00:00 +0800</pubDate>
      <guid>https://example.org/topics/view/1152</guid>
      <enclosure url="magnet:?xt=urn:btih:CCCC1152" length="0" type="application/x-bittorrent"/>
    </item>
  </channel>
</rss>
"""


def pytest_configure(config: pytest.Config) -> None:
    """Initialize logger once for all tests."""
    if getattr(logger_module, "_logger_instance", None) is None:
        logger_module.init_logger()


class FakeResponse:
    def __init__(self, status: int, body: bytes) -> None:
        self.status = status
        self._body = body

    async def read(self) -> bytes:
        return self._body


class FakeSession:
    """Stand-in for aiohttp.ClientSession recording every request.

    Responses are looked up by URL; unknown URLs get ``default``. A response
    may be an exception instance, which is raised instead. When ``gate`` is
    set, requests block until it is.
    """

    def __init__(
        self,
        responses: dict[str, tuple[int, bytes] | Exception] | None = None,
        default: tuple[int, bytes] | Exception = (200, b"ok"),
    ) -> None:
        self.responses = responses or {}
        self.default = default
        self.calls: list[tuple[str, str, dict[str, str]]] = []
        self.gate: anyio.Event | None = None
        self.closed = False

    @asynccontextmanager
    async def request(self, method: str, url: str, headers: dict[str, str]):
        self.calls.append((method, url, headers))
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.get(url, self.default)
        if isinstance(response, Exception):
            raise response
        status, body = response
        yield FakeResponse(status, body)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sample_feed() -> bytes:
    return SAMPLE_FEED.encode("utf-8")


@pytest.fixture
def anyio_backend() -> str:
    """The code relies on aiohttp/aiolimiter, which only support asyncio."""
    return "asyncio"
