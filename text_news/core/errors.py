"""Exception types shared across pipeline stages."""

from __future__ import annotations


class OutputDirectoryError(RuntimeError):
    """A primary output directory cannot be created or written to."""


class PageFetchError(RuntimeError):
    """An article page could not be retrieved."""

    def __init__(self, url: str, status_code: int | None, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status_code = status_code
        self.message = message


class ResponseParseError(ValueError):
    """An enrichment response does not match the analysis schema."""

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


class TruncatedResponse(ResponseParseError):
    """An enrichment response ended before the JSON document was complete."""
