from __future__ import annotations

from newsfeed.models.feed import (
    Error,
    FeedState,
    Idle,
    Loaded,
    Loading,
    LoadingMore,
    items_of,
)
from newsfeed.models.news import NewsItem, NewsPage

__all__ = [
    # news
    "NewsItem",
    "NewsPage",
    # feed state
    "FeedState",
    "Idle",
    "Loading",
    "Loaded",
    "LoadingMore",
    "Error",
    "items_of",
]
