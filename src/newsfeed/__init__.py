"""newsfeed: paginated news feed fetching and a two-tier image cache.

Typical use::

    async with open_app() as app:
        app.pager.subscribe(render)
        await app.pager.load_first_page()
        thumbnail = await app.image_cache.get(app.pager.items[0].title_image_url)
"""

from __future__ import annotations

import warnings
from importlib.metadata import PackageNotFoundError, version

_FALLBACK_VERSION = "0.0.0+unknown"

try:
    __version__ = version("newsfeed")
except PackageNotFoundError:
    # Running from a source checkout that was never installed.
    warnings.warn(
        f"newsfeed is not installed; reporting version {_FALLBACK_VERSION!r}.",
        RuntimeWarning,
        stacklevel=2,
    )
    __version__ = _FALLBACK_VERSION

# app.py reads __version__, so it has to be bound before these imports.
from newsfeed.app import open_app  # noqa: E402
from newsfeed.cache import ResourceCache  # noqa: E402
from newsfeed.config import Settings  # noqa: E402
from newsfeed.errors import ErrorCode, FetchError  # noqa: E402
from newsfeed.pager import FeedPager  # noqa: E402

__all__ = [
    "ErrorCode",
    "FeedPager",
    "FetchError",
    "ResourceCache",
    "Settings",
    "__version__",
    "open_app",
]
