"""Shared test fixtures for the newsfeed test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING

import pytest

from newsfeed.config import ImageCacheSettings
from newsfeed.errors import ErrorCode, FetchError
from newsfeed.models.news import NewsItem, NewsPage

if TYPE_CHECKING:
    from pathlib import Path


def _make_item(item_id: int) -> NewsItem:
    return NewsItem(
        id=item_id,
        title=f"News #{item_id}",
        description=f"Body of news #{item_id}",
        published_date="2025-12-16T09:30:00",
        url=f"avto-novosti/news-{item_id}",
        full_url=f"https://www.autodoc.ru/avto-novosti/news-{item_id}",
        title_image_url=f"https://file.autodoc.ru/news/{item_id}.jpg",
        category_type="Автомобильные новости",
    )


class FakeNewsService:
    """In-memory PageFetcherProtocol serving ``total`` sequentially numbered items.

    Pages listed in ``fail_pages`` raise FetchError; pages in ``crash_pages``
    raise RuntimeError, as a fetcher bug would. When ``gate`` is set to
    an unset asyncio.Event, every fetch blocks until the event is set.
    """

    def __init__(self, total: int) -> None:
        self.total = total
        self.fail_pages: set[int] = set()
        self.crash_pages: set[int] = set()
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[int, int]] = []

    async def fetch_page(self, page: int, page_size: int) -> NewsPage:
        self.calls.append((page, page_size))
        if self.gate is not None:
            await self.gate.wait()
        if page in self.fail_pages:
            raise FetchError(code=ErrorCode.FETCH_FAILED, message=f"HTTP 503 fetching page {page}")
        if page in self.crash_pages:
            raise RuntimeError("decoder bug")
        start = (page - 1) * page_size + 1
        stop = min(start + page_size, self.total + 1)
        return NewsPage(
            news=tuple(_make_item(i) for i in range(start, stop)),
            total_count=self.total,
        )


class FakeBlobFetcher:
    """In-memory BlobFetcherProtocol with call counting, failure and gating."""

    def __init__(self, blobs: dict[str, bytes] | None = None) -> None:
        self.blobs = dict(blobs or {})
        self.gate: asyncio.Event | None = None
        self.calls: list[str] = []

    async def fetch_blob(self, url: str) -> bytes:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if url not in self.blobs:
            raise FetchError(code=ErrorCode.NOT_FOUND, message=f"HTTP 404 fetching {url}")
        return self.blobs[url]


@pytest.fixture()
def make_item() -> Callable[[int], NewsItem]:
    """Factory for fully populated news items."""
    return _make_item


@pytest.fixture()
def news_service() -> FakeNewsService:
    """Fake feed with 40 items: pages of 15, 15 and 10 at the default page size."""
    return FakeNewsService(total=40)


@pytest.fixture()
def blob_fetcher() -> FakeBlobFetcher:
    return FakeBlobFetcher(
        {
            "https://x/img.jpg": b"\xff\xd8\xff\xe0 jpeg bytes",
            "https://x/other.png": b"\x89PNG other bytes",
        }
    )


@pytest.fixture()
def cache_settings(tmp_path: Path) -> ImageCacheSettings:
    """Image cache settings pointing at an isolated tmp directory."""
    return ImageCacheSettings(directory=str(tmp_path / "ImageCache"))
