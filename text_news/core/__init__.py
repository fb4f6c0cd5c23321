"""
Core domain models and business logic.

This package contains data types and helpers that are
independent of any specific pipeline stage.
"""

from .types import EnrichedArticle, FrontPage, ImportantDate, ImportantTimeframe, NamedEntity, RawArticle
from .errors import OutputDirectoryError, PageFetchError, ResponseParseError, TruncatedResponse
from .normalize import normalize_article
from .text import collapse_whitespace, slugify_title, source_tag, time_of_day, upcase

__all__ = [
    "RawArticle",
    "EnrichedArticle",
    "NamedEntity",
    "ImportantDate",
    "ImportantTimeframe",
    "FrontPage",
    "normalize_article",
    "OutputDirectoryError",
    "PageFetchError",
    "ResponseParseError",
    "TruncatedResponse",
    "collapse_whitespace",
    "slugify_title",
    "source_tag",
    "time_of_day",
    "upcase",
]
