"""Keyword caching and query logic for anibridge."""

from .cache import CacheEntry, FreshnessPolicy, KeywordCache
from .search import QueryFacade

__all__ = ["CacheEntry", "FreshnessPolicy", "KeywordCache", "QueryFacade"]
