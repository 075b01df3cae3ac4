"""anibridge: Torznab indexer bridge for anime RSS feeds."""

__version__ = "0.3.1"
