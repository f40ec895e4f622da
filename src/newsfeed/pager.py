"""Paginated feed state machine.

    Idle          --load_first_page--> Loading
    Loading       --fetch ok---------> Loaded(items)
    Loading       --fetch fail-------> Error(msg)
    Loaded(items) --load_next_page---> LoadingMore(items)   [if can_load_more]
    LoadingMore   --fetch ok---------> Loaded(items + new)
    LoadingMore   --fetch fail-------> Error(msg, items)
    Error         --retry------------> Loading

FeedPager is the only writer of its state and runs entirely on the event
loop: guards are evaluated and the new state published before the first
await, and fetch results are applied after the await resumes, so observers
never see interleaved transitions. At most one page request is in flight;
a first-page load started while a load-more is pending cancels it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import suppress
from typing import TYPE_CHECKING

import structlog

from newsfeed.errors import ErrorCode, FetchError
from newsfeed.models.feed import (
    Error,
    FeedState,
    Idle,
    Loaded,
    Loading,
    LoadingMore,
    items_of,
)

if TYPE_CHECKING:
    from newsfeed.models.news import NewsItem, NewsPage
    from newsfeed.protocols import PageFetcherProtocol

log = structlog.get_logger()

FIRST_PAGE = 1
DEFAULT_PAGE_SIZE = 15

StateCallback = Callable[[FeedState], None]


class FeedPager:
    """Drives page-by-page loading of a remote news collection."""

    def __init__(
        self,
        fetcher: PageFetcherProtocol,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._fetcher = fetcher
        self._page_size = page_size
        self._state: FeedState = Idle()
        self._current_page = FIRST_PAGE
        self._total_count: int | None = None
        self._subscribers: list[StateCallback] = []
        self._fetch_task: asyncio.Future[NewsPage] | None = None
        self._generation = 0

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def items(self) -> tuple[NewsItem, ...]:
        return items_of(self._state)

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def total_count(self) -> int | None:
        return self._total_count

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def can_load_more(self) -> bool:
        if self._total_count is None:
            return True
        return len(self.items) < self._total_count

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Register ``callback`` for state changes and return an unsubscribe function.

        The callback receives the current state immediately, then every new
        state in transition order.
        """
        self._subscribers.append(callback)
        self._deliver(callback, self._state)

        def unsubscribe() -> None:
            with suppress(ValueError):
                self._subscribers.remove(callback)

        return unsubscribe

    def _set_state(self, state: FeedState) -> None:
        self._state = state
        for callback in list(self._subscribers):
            self._deliver(callback, state)

    @staticmethod
    def _deliver(callback: StateCallback, state: FeedState) -> None:
        try:
            callback(state)
        except Exception:
            log.warning("feed_subscriber_error", state=type(state).__name__, exc_info=True)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_first_page(self) -> None:
        """(Re)load the feed from page 1. No-op while a first-page load is running."""
        if isinstance(self._state, Loading):
            return

        restore = self._start_load()
        self._current_page = FIRST_PAGE
        self._set_state(Loading())
        log.info("feed_load_started", page=FIRST_PAGE, page_size=self._page_size)

        try:
            page = await self._fetch(FIRST_PAGE, restore)
        except FetchError as exc:
            log.warning("feed_load_failed", page=FIRST_PAGE, **exc.to_dict())
            self._set_state(Error(exc.message))
            return
        if page is None:
            return

        self._total_count = page.total_count
        self._set_state(Loaded(page.news))
        log.info("feed_loaded", page=FIRST_PAGE, items=len(page.news), total=page.total_count)

    async def load_next_page(self) -> None:
        """Append the next page. No-op while loading or once everything is loaded."""
        if isinstance(self._state, Loading | LoadingMore) or not self.can_load_more:
            return

        current_items = self.items
        restore = self._start_load()
        self._current_page += 1
        page_number = self._current_page
        self._set_state(LoadingMore(current_items))
        log.info("feed_load_started", page=page_number, page_size=self._page_size)

        try:
            page = await self._fetch(page_number, restore)
        except FetchError as exc:
            log.warning("feed_load_failed", page=page_number, **exc.to_dict())
            self._current_page = page_number - 1
            self._set_state(Error(exc.message, current_items))
            return
        if page is None:
            return

        self._total_count = page.total_count
        all_items = current_items + page.news
        self._set_state(Loaded(all_items))
        log.info("feed_loaded", page=page_number, items=len(all_items), total=page.total_count)

    async def retry(self) -> None:
        """Start over from page 1, exactly like ``load_first_page``."""
        await self.load_first_page()

    def _start_load(self) -> tuple[FeedState, int]:
        """Make the upcoming fetch the current one, cancelling any older fetch.

        Returns the state and cursor to put back if the new load is cancelled.
        """
        restore: tuple[FeedState, int] = (self._state, self._current_page)
        if isinstance(self._state, LoadingMore):
            # The superseded load-more never completes; undo its cursor advance.
            restore = (Loaded(self._state.items), self._current_page - 1)

        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
            log.debug("page_fetch_superseded")
        self._fetch_task = None
        self._generation += 1
        return restore

    async def _fetch(self, page: int, restore: tuple[FeedState, int]) -> NewsPage | None:
        """Fetch ``page`` on behalf of the current load.

        Returns ``None`` when a newer load superseded this one while it was in
        flight; the newer load owns the state from then on. ``FetchError``
        propagates only for the current load; any other exception from the
        fetcher is logged and re-raised as ``FetchError`` so the load still
        ends in ``Error`` and stays retryable. If the calling task itself is
        cancelled, the state and cursor in ``restore`` are put back before the
        cancellation propagates.
        """
        generation = self._generation
        task = asyncio.ensure_future(self._fetcher.fetch_page(page, self._page_size))
        self._fetch_task = task
        try:
            result = await task
        except FetchError:
            if generation != self._generation:
                return None
            raise
        except Exception as exc:
            if generation != self._generation:
                return None
            log.error("page_fetch_crashed", page=page, exc_info=True)
            raise FetchError(
                code=ErrorCode.FETCH_FAILED,
                message=str(exc) or type(exc).__name__,
            ) from exc
        except asyncio.CancelledError:
            if generation == self._generation:
                state, self._current_page = restore
                self._set_state(state)
                raise
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return None
        finally:
            if self._fetch_task is task:
                self._fetch_task = None

        if generation != self._generation:
            return None
        return result
