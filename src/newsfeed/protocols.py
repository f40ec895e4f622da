"""Protocol interfaces for swappable components.

FeedPager and ResourceCache reference these protocols, not the concrete
fetchers. This allows:
- Tests to use lightweight in-memory fakes
- Other feed sources to be plugged in without touching the pager
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from newsfeed.models.news import NewsPage


class PageFetcherProtocol(Protocol):
    """Interface for the remote paginated news source."""

    async def fetch_page(self, page: int, page_size: int) -> NewsPage: ...


class BlobFetcherProtocol(Protocol):
    """Interface for remote binary downloads."""

    async def fetch_blob(self, url: str) -> bytes: ...


class ResourceCacheProtocol(Protocol):
    """Interface for the image cache consumed by the UI layer."""

    async def get(self, identifier: str | None) -> bytes | None: ...

    async def clear(self) -> None: ...
