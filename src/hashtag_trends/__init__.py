"""Trending hashtags over a deduplicated tweet stream."""

__version__ = "0.1.0"
