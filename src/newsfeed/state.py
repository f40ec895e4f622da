"""Application state container.

AppState is created once by ``open_app`` and handed by reference to the UI
layer. It holds the long-lived core components; nothing here is a global.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from newsfeed.config import Settings
    from newsfeed.pager import FeedPager
    from newsfeed.protocols import (
        BlobFetcherProtocol,
        PageFetcherProtocol,
        ResourceCacheProtocol,
    )


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    http_client: httpx.AsyncClient
    news_service: PageFetcherProtocol
    blob_fetcher: BlobFetcherProtocol
    image_cache: ResourceCacheProtocol
    pager: FeedPager
