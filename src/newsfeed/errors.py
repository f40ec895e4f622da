from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    FETCH_FAILED = "FETCH_FAILED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    INVALID_URL = "INVALID_URL"


class FetchError(Exception):
    """Raised by the fetchers for every expected remote failure.

    FeedPager turns it into an ``Error`` state; ResourceCache absorbs it and
    reports a miss. The message is meant to be shown to the user as-is.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
        }
