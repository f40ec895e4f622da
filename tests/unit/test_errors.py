"""Unit tests for newsfeed.errors."""

from __future__ import annotations

from newsfeed.errors import ErrorCode, FetchError


class TestFetchError:
    def test_defaults_to_recoverable(self) -> None:
        exc = FetchError(code=ErrorCode.FETCH_FAILED, message="HTTP 503 fetching x")
        assert exc.recoverable is True
        assert str(exc) == "HTTP 503 fetching x"

    def test_to_dict(self) -> None:
        exc = FetchError(
            code=ErrorCode.NOT_FOUND,
            message="HTTP 404 fetching https://x/img.jpg",
            recoverable=False,
        )
        assert exc.to_dict() == {
            "code": "NOT_FOUND",
            "message": "HTTP 404 fetching https://x/img.jpg",
            "recoverable": False,
        }
