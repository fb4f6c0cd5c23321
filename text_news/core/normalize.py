"""In-place cleanup of an enriched article: one-line headings, no repeated sections."""

from __future__ import annotations

from typing import Callable, TypeVar

from .text import collapse_whitespace
from .types import EnrichedArticle

T = TypeVar("T")


def dedup_by(items: list[T], key: Callable[[T], str]) -> list[T]:
    """Drop later items whose key was already seen, preserving order."""
    seen: set[str] = set()
    unique: list[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        unique.append(item)
    return unique


def normalize_article(article: EnrichedArticle) -> EnrichedArticle:
    """Deduplicate entities, dates, timeframes and takeaways of one article.

    Entities are keyed by name, dates and timeframes by their relevance
    description, takeaways by their exact text. The first occurrence wins.
    Title and category are collapsed onto a single line. The article is
    mutated and returned for convenience.
    """
    article.title = collapse_whitespace(article.title)
    article.category = collapse_whitespace(article.category)
    article.named_entities = dedup_by(article.named_entities, lambda e: e.name)
    article.important_dates = dedup_by(article.important_dates, lambda d: d.description)
    article.important_timeframes = dedup_by(article.important_timeframes, lambda t: t.description)
    article.key_takeaways = dedup_by(article.key_takeaways, lambda s: s)
    return article
