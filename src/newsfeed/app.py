"""Application lifecycle.

Responsibilities (and nothing more):
- Configure structlog
- Build the shared HTTP client and the core components once
- Hand them out as an AppState and close the client on exit
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog

from newsfeed import __version__
from newsfeed.cache import ResourceCache
from newsfeed.config import Settings
from newsfeed.fetcher import BlobFetcher, NewsService, build_http_client
from newsfeed.pager import FeedPager
from newsfeed.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

log = structlog.get_logger()


def setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def open_app(settings: Settings | None = None) -> AsyncIterator[AppState]:
    """Create and tear down all shared resources for the application's lifetime."""
    if settings is None:
        settings = Settings()
    setup_logging(settings)

    log.info("app_starting", version=__version__)

    http_client = build_http_client(settings.http)
    news_service = NewsService(http_client, settings.feed)
    blob_fetcher = BlobFetcher(http_client)

    state = AppState(
        settings=settings,
        http_client=http_client,
        news_service=news_service,
        blob_fetcher=blob_fetcher,
        image_cache=ResourceCache(blob_fetcher, settings.image_cache),
        pager=FeedPager(news_service, page_size=settings.feed.page_size),
    )

    log.info(
        "app_started",
        feed_url=settings.feed.base_url,
        page_size=settings.feed.page_size,
        image_cache_dir=settings.image_cache.directory,
    )

    try:
        yield state
    finally:
        await http_client.aclose()
        log.info("app_stopping")
