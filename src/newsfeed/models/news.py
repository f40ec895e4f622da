from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class NewsItem(BaseModel):
    """Single news record as returned by the feed API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    title: str
    description: str | None = None
    published_date: str = Field(alias="publishedDate")  # "2025-12-16T00:00:00", no offset
    url: str | None = None
    full_url: str | None = Field(default=None, alias="fullUrl")
    title_image_url: str | None = Field(default=None, alias="titleImageUrl")
    category_type: str | None = Field(default=None, alias="categoryType")

    @property
    def published_at(self) -> datetime | None:
        """``published_date`` as an aware datetime, read as UTC when it has no offset."""
        try:
            parsed = datetime.fromisoformat(self.published_date)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)


class NewsPage(BaseModel):
    """One batch of items plus the total count known to the server."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    news: tuple[NewsItem, ...] = ()
    total_count: int = Field(alias="totalCount", ge=0)
