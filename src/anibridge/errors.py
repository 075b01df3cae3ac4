"""Exception types shared across anibridge."""


class AniBridgeError(Exception):
    pass


class FetchFailure(AniBridgeError):
    """Base class for origin fetch errors."""


class NetworkFailure(FetchFailure):
    """Transport-level failure: DNS, timeout, connection reset."""


class HttpStatusFailure(FetchFailure):
    """The origin answered with a non-2xx status."""

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"HTTP {status} for {url}")
        self.status = status
        self.url = url


class ParseFailure(AniBridgeError):
    """Feed document or feed item could not be parsed."""


class MissingResourceReference(ParseFailure):
    """Feed item carries no magnet/torrent reference."""
