"""Cached and deduplicated HTTP fetching for anibridge.

Every origin request in anibridge goes through :class:`CachedFetcher`. It
keeps two keyed stores: completed responses and requests that are still in
flight. Callers asking for a key that is already in flight wait for that
request instead of issuing their own. The origin request is shielded from
cancellation of the caller that started it, so joined callers always get
its result.
"""

import time
from collections.abc import Callable, Mapping
from urllib.parse import urlparse

import anyio
import msgspec
from aiohttp import ClientError, ClientSession, ClientTimeout
from aiolimiter import AsyncLimiter

from . import logger
from .errors import HttpStatusFailure, NetworkFailure

# Only these request headers change what the origin returns
CACHEABLE_HEADERS = frozenset({"accept", "authorization", "user-agent"})


class FetchCacheLimits(msgspec.Struct, frozen=True):
    """Size and freshness limits for the response store.

    Attributes:
        max_size: Hard upper bound on stored responses.
        cleanup_threshold: Store size at which expired entries are purged.
        default_duration: Cache duration in seconds when the caller gives none.
    """

    max_size: int = 100
    cleanup_threshold: int = 80
    default_duration: float = 300.0


class _StoredResponse(msgspec.Struct):
    data: bytes
    timestamp: float


class _PendingRequest:
    """Result slot shared by every caller waiting on one origin request."""

    __slots__ = ("_done", "data", "error")

    def __init__(self) -> None:
        self._done = anyio.Event()
        self.data = b""
        self.error: Exception | None = None

    def resolve(self, data: bytes) -> None:
        self.data = data
        self._done.set()

    def fail(self, error: Exception) -> None:
        self.error = error
        self._done.set()

    async def wait(self) -> bytes:
        await self._done.wait()
        if self.error is not None:
            raise self.error
        return self.data


def make_cache_key(
    url: str, method: str = "GET", headers: Mapping[str, str] | None = None
) -> str:
    """Build a stable cache key from the parts of a request that shape its response.

    Args:
        url: Request URL.
        method: HTTP method.
        headers: Request headers. Only accept, authorization and user-agent
            are taken into account, compared case-insensitively.

    Returns:
        JSON string identifying the request.
    """
    relevant = {
        f"header:{name.lower()}": value
        for name, value in (headers or {}).items()
        if name.lower() in CACHEABLE_HEADERS
    }
    key = {
        "url": url,
        "method": method.upper(),
        "headers": dict(sorted(relevant.items())),
    }
    return msgspec.json.encode(key).decode()


class CachedFetcher:
    """HTTP GET with an in-memory response cache and request coalescing."""

    def __init__(
        self,
        session: ClientSession | None = None,
        limits: FetchCacheLimits | None = None,
        *,
        timeout: float = 60.0,
        rate_limit_max_requests: int = 10,
        rate_limit_period: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self.limits = limits or FetchCacheLimits()
        self.rate_limit_max_requests = rate_limit_max_requests
        self.rate_limit_period = rate_limit_period
        self._clock = clock

        self._store: dict[str, _StoredResponse] = {}
        self._pending: dict[str, _PendingRequest] = {}
        self._rate_limiters: dict[str, AsyncLimiter] = {}

    @property
    def client(self) -> ClientSession:
        """Get the aiohttp session, creating it on first use."""
        if self._session is None:
            self._session = ClientSession(
                timeout=ClientTimeout(total=self._timeout, connect=30.0)
            )
        return self._session

    @property
    def cache_size(self) -> int:
        return len(self._store)

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def rate_limiter(self, url: str) -> AsyncLimiter:
        """Get the rate limiter for the host of ``url``."""
        host = urlparse(url).hostname or ""
        limiter = self._rate_limiters.get(host)
        if limiter is None:
            limiter = AsyncLimiter(
                self.rate_limit_max_requests, self.rate_limit_period
            )
            self._rate_limiters[host] = limiter
        return limiter

    def set_rate_limit(self, url: str, max_requests: int, period: float) -> None:
        """Install a dedicated rate limiter for the host of ``url``."""
        host = urlparse(url).hostname or ""
        self._rate_limiters[host] = AsyncLimiter(max_requests, period)

    def clear(self) -> None:
        """Drop every stored response. In-flight requests are left alone."""
        self._store.clear()

    async def close(self) -> None:
        """Close the aiohttp session if this fetcher created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def get(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        cache_duration: float | None = None,
    ) -> bytes:
        """Fetch ``url`` and return the response body.

        Args:
            url: Request URL.
            method: HTTP method.
            headers: Request headers.
            cache_duration: Seconds a stored response stays valid for this
                call. Defaults to ``limits.default_duration``.

        Returns:
            Response body.

        Raises:
            HttpStatusFailure: If the origin answers with a non-2xx status.
            NetworkFailure: If the request fails at the transport level.
        """
        duration = (
            self.limits.default_duration if cache_duration is None else cache_duration
        )
        key = make_cache_key(url, method, headers)
        now = self._clock()

        if len(self._store) >= self.limits.cleanup_threshold:
            self._maintain(duration, now)

        stored = self._store.get(key)
        if stored is not None:
            if now - stored.timestamp < duration:
                logger.debug("Fetch cache hit for %s", url)
                return stored.data
            del self._store[key]

        pending = self._pending.get(key)
        if pending is not None:
            logger.debug("Joining in-flight request for %s", url)
            return await pending.wait()

        # Registered before the first await so later callers attach to it
        pending = _PendingRequest()
        self._pending[key] = pending
        # Cancelling this caller must not fail the callers joined on this key
        with anyio.CancelScope(shield=True):
            try:
                data = await self._request(url, method, headers)
            except Exception as e:
                pending.fail(e)
                raise
            except BaseException:
                pending.fail(NetworkFailure(f"Request for {url} was interrupted"))
                raise
            finally:
                self._pending.pop(key, None)

            self._store[key] = _StoredResponse(data=data, timestamp=self._clock())
            if len(self._store) > self.limits.max_size:
                self._evict_oldest(self.limits.max_size)
            pending.resolve(data)
        return data

    async def _request(
        self, url: str, method: str, headers: Mapping[str, str] | None
    ) -> bytes:
        async with self.rate_limiter(url):
            logger.debug("Requesting %s %s", method, logger.redact_url_password(url))
            try:
                async with self.client.request(
                    method, url, headers=dict(headers or {})
                ) as response:
                    content = await response.read()
                    status = response.status
            except (ClientError, TimeoutError) as e:
                raise NetworkFailure(f"Request error for {url}: {e}") from e

        if not 200 <= status < 300:
            logger.debug("Status of request is %s. Aborting...", status)
            logger.debug("Response content (first 500 bytes): %s", content[:500])
            raise HttpStatusFailure(status, url)
        return content

    def _maintain(self, duration: float, now: float) -> None:
        """Purge expired responses, then trim the store to its hard limit."""
        expired = [
            key
            for key, stored in self._store.items()
            if now - stored.timestamp >= duration
        ]
        for key in expired:
            del self._store[key]
        if expired:
            logger.debug("Purged %d expired response(s) from fetch cache", len(expired))

        if len(self._store) > self.limits.max_size:
            self._evict_oldest(self.limits.max_size)

    def _evict_oldest(self, target_size: int) -> None:
        excess = len(self._store) - target_size
        if excess <= 0:
            return
        oldest = sorted(self._store.items(), key=lambda kv: kv[1].timestamp)[:excess]
        for key, _ in oldest:
            del self._store[key]
        logger.debug("Evicted %d oldest response(s) from fetch cache", excess)
