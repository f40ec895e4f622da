"""End-to-end tests: open_app wiring with mocked HTTP."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import respx

from newsfeed.app import open_app
from newsfeed.cache import cache_filename
from newsfeed.config import Settings
from newsfeed.models.feed import Error, Loaded

API = "https://api.test/api"


async def test_feed_pages_through_real_service(
    settings: Settings, news_body: Callable[[range, int], dict]
) -> None:
    with respx.mock:
        respx.get(f"{API}/news/1/2").mock(
            return_value=httpx.Response(200, json=news_body(range(1, 3), 3))
        )
        respx.get(f"{API}/news/2/2").mock(
            return_value=httpx.Response(200, json=news_body(range(3, 4), 3))
        )
        async with open_app(settings) as state:
            await state.pager.load_first_page()
            await state.pager.load_next_page()
            await state.pager.load_next_page()  # exhausted: no request

            assert isinstance(state.pager.state, Loaded)
            assert [item.id for item in state.pager.items] == [1, 2, 3]
            assert respx.calls.call_count == 2


async def test_server_error_surfaces_as_error_state(settings: Settings) -> None:
    with respx.mock:
        respx.get(f"{API}/news/1/2").mock(return_value=httpx.Response(503))
        async with open_app(settings) as state:
            await state.pager.load_first_page()

            assert isinstance(state.pager.state, Error)
            assert "HTTP 503" in state.pager.state.message


async def test_item_image_loaded_once_and_persisted(
    settings: Settings, news_body: Callable[[range, int], dict]
) -> None:
    image_url = "https://img.test/1.jpg"
    with respx.mock:
        respx.get(f"{API}/news/1/2").mock(
            return_value=httpx.Response(200, json=news_body(range(1, 3), 2))
        )
        image_route = respx.get(image_url).mock(
            return_value=httpx.Response(200, content=b"\xff\xd8 image")
        )
        async with open_app(settings) as state:
            await state.pager.load_first_page()
            url = state.pager.items[0].title_image_url
            assert url == image_url

            assert await state.image_cache.get(url) == b"\xff\xd8 image"
            assert await state.image_cache.get(url) == b"\xff\xd8 image"
            assert image_route.call_count == 1

    on_disk = Path(settings.image_cache.directory) / cache_filename(image_url)
    assert on_disk.read_bytes() == b"\xff\xd8 image"


async def test_image_failure_is_a_miss(settings: Settings) -> None:
    with respx.mock:
        respx.get("https://img.test/broken.jpg").mock(side_effect=httpx.ReadTimeout("slow"))
        async with open_app(settings) as state:
            assert await state.image_cache.get("https://img.test/broken.jpg") is None


async def test_http_client_closed_on_exit(settings: Settings) -> None:
    async with open_app(settings) as state:
        client = state.http_client
        assert not client.is_closed
    assert client.is_closed
