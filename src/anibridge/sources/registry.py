"""Feed source registry and global instance management for anibridge."""

import base64

import anyio
import msgspec

from .. import logger
from ..config import Config
from ..core.cache import FreshnessPolicy, KeywordCache
from ..core.search import QueryFacade
from ..fetcher import CachedFetcher, FetchCacheLimits
from .acgrip import ACGRIPFeedParser
from .dmhy import DMHYFeedParser
from .feed_common import FeedParser

WEEK_SECONDS = 7 * 24 * 60 * 60
MONDAY = 0


class SourceSpec(msgspec.Struct, frozen=True):
    """Predefined feed source settings.

    Attributes:
        display_name: Name used in logs and channel titles.
        encoded_rss_url: Base64-encoded feed URL.
        freshness: Keyword cache policy for the source.
        rate_limit_max_requests: Origin requests allowed per period.
        rate_limit_period: Rate limit period in seconds.
        slash_series_titles: Titles may carry ``中文 / English`` series names.
    """

    display_name: str
    encoded_rss_url: str
    freshness: FreshnessPolicy
    rate_limit_max_requests: int
    rate_limit_period: float
    slash_series_titles: bool = False

    @property
    def rss_url(self) -> str:
        return base64.b64decode(self.encoded_rss_url).decode("utf-8")


SOURCE_REGISTRY: dict[str, tuple[type[FeedParser], SourceSpec]] = {
    "dmhy": (
        DMHYFeedParser,
        SourceSpec(
            display_name="DMHY",
            encoded_rss_url="aHR0cHM6Ly9kbWh5Lm9yZy90b3BpY3MvcnNzL3Jzcy54bWw=",
            freshness=FreshnessPolicy(ttl=WEEK_SECONDS, refresh_weekday=MONDAY),
            rate_limit_max_requests=5,
            rate_limit_period=10.0,
        ),
    ),
    "acgrip": (
        ACGRIPFeedParser,
        SourceSpec(
            display_name="ACG.RIP",
            encoded_rss_url="aHR0cHM6Ly9hY2cucmlwLy54bWw=",
            freshness=FreshnessPolicy(ttl=0.0),
            rate_limit_max_requests=5,
            rate_limit_period=10.0,
            slash_series_titles=True,
        ),
    ),
}


def create_facade(
    name: str,
    fetcher: CachedFetcher,
    config: Config,
) -> QueryFacade:
    """Build the parser, keyword cache and facade for a registered source.

    Args:
        name: Source name, a key of ``SOURCE_REGISTRY``.
        fetcher: Shared cached fetcher.
        config: Active configuration, for per-source overrides.

    Returns:
        QueryFacade: Facade for the source.

    Raises:
        ValueError: If the source is not registered.
    """
    if name not in SOURCE_REGISTRY:
        raise ValueError(f"Unsupported source: {name}")

    parser_class, spec = SOURCE_REGISTRY[name]
    overrides = config.source(name)

    rss_url = overrides.rss_url or spec.rss_url
    policy = spec.freshness
    if overrides.cache_ttl is not None:
        policy = msgspec.structs.replace(policy, ttl=overrides.cache_ttl)

    fetcher.set_rate_limit(
        rss_url,
        overrides.rate_limit_max_requests or spec.rate_limit_max_requests,
        overrides.rate_limit_period or spec.rate_limit_period,
    )
    parser = parser_class(fetcher, rss_url)
    return QueryFacade(KeywordCache(parser, policy))


def get_source_spec(name: str) -> SourceSpec:
    """Get the registered spec of a source.

    Raises:
        KeyError: If the source is not registered.
    """
    return SOURCE_REGISTRY[name][1]


# Global source instances
_facades_instance: dict[str, QueryFacade] = {}
_fetcher_instance: CachedFetcher | None = None
_sources_lock = anyio.Lock()


async def init_sources(config: Config) -> None:
    """Initialize the shared fetcher and one facade per enabled source.

    Should be called once during application startup.

    Args:
        config: Active configuration.

    Raises:
        RuntimeError: If sources are already initialized or none is enabled.
    """
    global _facades_instance, _fetcher_instance
    async with _sources_lock:
        if _facades_instance:
            raise RuntimeError("Sources already initialized.")

        logger.section("===== Initializing Feed Sources =====")
        fetcher = CachedFetcher(
            limits=FetchCacheLimits(
                max_size=config.fetch.max_size,
                cleanup_threshold=config.fetch.cleanup_threshold,
                default_duration=config.fetch.default_duration,
            ),
            timeout=config.fetch.timeout,
        )

        facades = {}
        for name in SOURCE_REGISTRY:
            if not config.source(name).enabled:
                logger.info("Source %s is disabled", name)
                continue
            facades[name] = create_facade(name, fetcher, config)
            logger.success(
                "Source %s ready at %s",
                name,
                logger.redact_url_password(facades[name].cache.parser.base_url),
            )

        if not facades:
            await fetcher.close()
            logger.critical("No feed sources are enabled")
            raise RuntimeError("No feed sources enabled")

        _fetcher_instance = fetcher
        _facades_instance = facades


def get_facades() -> dict[str, QueryFacade]:
    """Get the global facades, keyed by source name.

    Raises:
        RuntimeError: If sources have not been initialized.
    """
    if not _facades_instance:
        raise RuntimeError("Sources not initialized. Call init_sources() first.")
    return _facades_instance


def get_facade(name: str) -> QueryFacade | None:
    """Get the facade of one source, or None if it is unknown or disabled.

    Raises:
        RuntimeError: If sources have not been initialized.
    """
    return get_facades().get(name)


async def cleanup_sources() -> None:
    """Close the shared fetcher and forget every facade.

    Should be called during application shutdown.
    """
    global _facades_instance, _fetcher_instance
    async with _sources_lock:
        if _fetcher_instance is None:
            logger.debug("No feed sources to cleanup")
            return

        try:
            await _fetcher_instance.close()
            logger.debug("Closed shared fetcher")
        except Exception as e:
            logger.warning("Error closing shared fetcher: %s", e)

        _fetcher_instance = None
        _facades_instance = {}
