"""HTTP fetchers for feed pages and image blobs.

Both fetchers share a single httpx.AsyncClient received via constructor
injection; the application lifecycle (see app.py) owns the client.
Every transport, status and decoding failure leaves this module as a
FetchError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import ValidationError

from newsfeed.errors import ErrorCode, FetchError
from newsfeed.models.news import NewsPage

if TYPE_CHECKING:
    from newsfeed.config import FeedSettings, HttpSettings

log = structlog.get_logger()


def build_http_client(settings: HttpSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=max(1, settings.max_connections // 2),
        ),
    )


async def _get(client: httpx.AsyncClient, url: str) -> httpx.Response:
    """GET ``url`` and return the response, raising FetchError on any failure."""
    try:
        response = await client.get(url)
    except httpx.InvalidURL as exc:
        raise FetchError(
            code=ErrorCode.INVALID_URL,
            message=f"Invalid URL: {url}",
            recoverable=False,
        ) from exc
    except httpx.UnsupportedProtocol as exc:
        raise FetchError(
            code=ErrorCode.INVALID_URL,
            message=f"Unsupported URL scheme: {url}",
            recoverable=False,
        ) from exc
    except httpx.HTTPError as exc:
        raise FetchError(
            code=ErrorCode.FETCH_FAILED,
            message=f"Network error fetching {url}: {exc}",
        ) from exc

    if not response.is_success:
        if response.status_code == 404:
            raise FetchError(
                code=ErrorCode.NOT_FOUND,
                message=f"HTTP 404 fetching {url}",
                recoverable=False,
            )
        raise FetchError(
            code=ErrorCode.FETCH_FAILED,
            message=f"HTTP {response.status_code} fetching {url}",
        )
    return response


class NewsService:
    """Paginated news source backed by the ``/news/{page}/{limit}`` endpoint."""

    def __init__(self, client: httpx.AsyncClient, settings: FeedSettings) -> None:
        self._client = client
        self._base_url = settings.base_url.rstrip("/")

    def page_url(self, page: int, page_size: int) -> str:
        return f"{self._base_url}/news/{page}/{page_size}"

    async def fetch_page(self, page: int, page_size: int) -> NewsPage:
        """Fetch and validate one page. Raises FetchError on any failure."""
        url = self.page_url(page, page_size)
        response = await _get(self._client, url)

        try:
            news_page = NewsPage.model_validate_json(response.content)
        except ValidationError as exc:
            log.warning("page_decode_failed", url=url, errors=exc.error_count())
            raise FetchError(
                code=ErrorCode.INVALID_RESPONSE,
                message=f"Malformed news page from {url}",
            ) from exc

        log.info(
            "page_fetch_complete",
            page=page,
            page_size=page_size,
            items=len(news_page.news),
            total_count=news_page.total_count,
        )
        return news_page


class BlobFetcher:
    """Raw binary downloader used by ResourceCache."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_blob(self, url: str) -> bytes:
        response = await _get(self._client, url)
        log.debug("blob_fetch_complete", url=url, content_length=len(response.content))
        return response.content
