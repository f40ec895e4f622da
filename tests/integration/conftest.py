"""Integration test fixtures.

Provides Settings pointing at a fake API host and an isolated image cache
directory. HTTP is mocked with respx inside each test.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import pytest

from newsfeed.config import Settings

if TYPE_CHECKING:
    from pathlib import Path

API = "https://api.test/api"


def _news_body(ids: range, total: int) -> dict:
    return {
        "news": [
            {
                "id": i,
                "title": f"News #{i}",
                "publishedDate": "2025-12-16T00:00:00",
                "titleImageUrl": f"https://img.test/{i}.jpg",
            }
            for i in ids
        ],
        "totalCount": total,
    }


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        feed={"base_url": API, "page_size": 2},
        image_cache={"directory": str(tmp_path / "ImageCache")},
        logging={"level": "WARNING", "format": "text"},
    )


@pytest.fixture()
def news_body() -> Callable[[range, int], dict]:
    """Builder for ``/news/{page}/{limit}`` JSON bodies."""
    return _news_body
