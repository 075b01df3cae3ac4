"""Torznab categories and XML encoding for anibridge."""
