"""Pager state union.

Exactly one of these is current at any time. The pager replaces the whole
object on every transition; nothing mutates a state in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from newsfeed.models.news import NewsItem


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Loaded:
    items: tuple[NewsItem, ...] = ()


@dataclass(frozen=True)
class LoadingMore:
    items: tuple[NewsItem, ...] = ()


@dataclass(frozen=True)
class Error:
    message: str
    # Items held before a failed load-more; empty after a failed first page.
    items: tuple[NewsItem, ...] = ()


FeedState = Idle | Loading | Loaded | LoadingMore | Error


def items_of(state: FeedState) -> tuple[NewsItem, ...]:
    """Return the items a state carries (empty for ``Idle`` and ``Loading``)."""
    if isinstance(state, Loaded | LoadingMore | Error):
        return state.items
    return ()
