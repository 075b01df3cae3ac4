"""Unit tests for the feed source registry."""

import pytest

from anibridge import config
from anibridge.fetcher import CachedFetcher
from anibridge.sources import registry
from anibridge.sources.acgrip import ACGRIPFeedParser
from anibridge.sources.dmhy import DMHYFeedParser

pytestmark = pytest.mark.anyio


@pytest.fixture
def fetcher(fake_session) -> CachedFetcher:
    return CachedFetcher(fake_session)


@pytest.fixture
async def clean_registry():
    """Make sure every test starts and ends without global sources."""
    await registry.cleanup_sources()
    yield
    await registry.cleanup_sources()


class TestSourceRegistry:
    """Tests for SOURCE_REGISTRY and create_facade."""

    def test_registered_urls(self) -> None:
        """Should decode the origin feed URLs."""
        assert registry.get_source_spec("dmhy").rss_url == (
            "https://dmhy.org/topics/rss/rss.xml"
        )
        assert registry.get_source_spec("acgrip").rss_url == "https://acg.rip/.xml"

    def test_freshness_policies(self) -> None:
        """Should give DMHY a weekly Monday policy and ACG.RIP a zero TTL."""
        dmhy = registry.get_source_spec("dmhy").freshness
        acgrip = registry.get_source_spec("acgrip").freshness

        assert dmhy.ttl == 7 * 24 * 60 * 60
        assert dmhy.refresh_weekday == 0
        assert acgrip.ttl == 0
        assert acgrip.refresh_weekday is None

    def test_create_facade_defaults(self, fetcher: CachedFetcher) -> None:
        """Should build a facade with the registered parser and URL."""
        facade = registry.create_facade("dmhy", fetcher, config.Config())

        parser = facade.cache.parser
        assert isinstance(parser, DMHYFeedParser)
        assert parser.base_url == "https://dmhy.org/topics/rss/rss.xml"
        assert parser.fetcher is fetcher

    def test_create_facade_overrides(self, fetcher: CachedFetcher) -> None:
        """Should apply per-source URL, TTL and rate limit overrides."""
        cfg = config.Config(
            sources={
                "acgrip": config.SourceConfig(
                    rss_url="https://mirror.example.org/.xml",
                    cache_ttl=120,
                    rate_limit_max_requests=1,
                    rate_limit_period=3.0,
                )
            }
        )

        facade = registry.create_facade("acgrip", fetcher, cfg)

        assert isinstance(facade.cache.parser, ACGRIPFeedParser)
        assert facade.cache.parser.base_url == "https://mirror.example.org/.xml"
        assert facade.cache.policy.ttl == 120
        limiter = fetcher.rate_limiter("https://mirror.example.org/x")
        assert limiter.max_rate == 1
        assert limiter.time_period == 3.0

    def test_unknown_source(self, fetcher: CachedFetcher) -> None:
        """Should reject unregistered sources."""
        with pytest.raises(ValueError):
            registry.create_facade("nyaa", fetcher, config.Config())


class TestGlobalInstance:
    """Tests for init_sources, get_facades and cleanup_sources."""

    async def test_lifecycle(self, clean_registry) -> None:
        """Should initialize enabled sources once and forget them on cleanup."""
        cfg = config.Config(sources={"acgrip": config.SourceConfig(enabled=False)})

        await registry.init_sources(cfg)

        assert set(registry.get_facades()) == {"dmhy"}
        assert registry.get_facade("acgrip") is None
        with pytest.raises(RuntimeError):
            await registry.init_sources(cfg)

        await registry.cleanup_sources()
        with pytest.raises(RuntimeError):
            registry.get_facades()

    async def test_no_sources_enabled(self, clean_registry) -> None:
        """Should refuse to start without any enabled source."""
        cfg = config.Config(
            sources={
                "dmhy": config.SourceConfig(enabled=False),
                "acgrip": config.SourceConfig(enabled=False),
            }
        )

        with pytest.raises(RuntimeError):
            await registry.init_sources(cfg)
