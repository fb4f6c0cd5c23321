"""
Bounded-concurrency fetch orchestration.

Every URL of a publisher is fetched as its own task; a semaphore keeps at
most N requests in flight. One URL failing never affects its siblings:
errors are categorized, logged and counted, and the URL is dropped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import time
from typing import Iterable, Protocol

from ..core.errors import PageFetchError
from ..core.types import RawArticle
from ..llm.tracing import set_span_output, start_span
from ..utils.logging import log_event


class ArticleSource(Protocol):
    name: str
    concurrency: int

    async def index(self) -> set[str]: ...

    async def fetch(self, url: str) -> RawArticle | None: ...


@dataclass
class FetchStats:
    """Statistics collected during the fetch stage.

    Attributes:
        total: URLs handed to fetch_all
        success: Pages that produced a RawArticle
        skipped: Pages without content or outside the publisher origin
        failed: Pages that raised
        errors: Failure counts per error category
        per_publisher: Articles fetched per publisher
    """

    total: int = 0
    success: int = 0
    skipped: int = 0
    failed: int = 0
    errors: dict[str, int] = field(default_factory=dict)
    per_publisher: dict[str, int] = field(default_factory=dict)


def _categorize_error(error: str | None, status_code: int | None) -> str:
    """Categorize fetch errors for better logging.

    Args:
        error: Error message from fetch attempt
        status_code: HTTP status code if available

    Returns:
        Error category: "network_failed", "blocked", "timeout", "not_found", "unknown"
    """
    if not error:
        return "unknown"
    error_lower = error.lower()
    if "timeout" in error_lower or "timed out" in error_lower:
        return "timeout"
    if status_code in (401, 403, 429) or "blocked" in error_lower:
        return "blocked"
    if status_code in (404, 410):
        return "not_found"
    if "connect" in error_lower or "connection" in error_lower:
        return "network_failed"
    return "unknown"


async def fetch_all(
    source: ArticleSource,
    urls: Iterable[str],
    concurrency: int,
    logger: logging.Logger | None = None,
    stats: FetchStats | None = None,
) -> list[RawArticle]:
    """Fetch every URL with at most `concurrency` requests in flight.

    Results are collected in completion order. Failures and empty pages
    are excluded; nothing is raised to the caller.
    """
    stats = stats if stats is not None else FetchStats()
    sem = asyncio.Semaphore(max(1, concurrency))
    url_list = list(urls)
    stats.total += len(url_list)

    async def _one(url: str) -> RawArticle | None:
        async with sem:
            try:
                return await source.fetch(url)
            except Exception as exc:  # noqa: BLE001
                status_code = exc.status_code if isinstance(exc, PageFetchError) else None
                category = _categorize_error(f"{type(exc).__name__}: {exc}", status_code)
                stats.failed += 1
                stats.errors[category] = stats.errors.get(category, 0) + 1
                log_event(
                    logger,
                    "Article fetch failed",
                    event="fetch_failed",
                    publisher=source.name,
                    url=url,
                    category=category,
                    status_code=status_code,
                    error=str(exc),
                )
                return None

    articles: list[RawArticle] = []
    tasks = [asyncio.create_task(_one(url)) for url in url_list]
    for next_done in asyncio.as_completed(tasks):
        article = await next_done
        if article is None:
            continue
        articles.append(article)
        stats.success += 1

    stats.skipped = stats.total - stats.success - stats.failed
    stats.per_publisher[source.name] = stats.per_publisher.get(source.name, 0) + len(articles)
    return articles


def assign_candidates(indexed: list[tuple[ArticleSource, set[str]]]) -> list[tuple[ArticleSource, list[str]]]:
    """Globally sort and deduplicate candidates; the first publisher listing a URL owns it."""
    owner: dict[str, int] = {}
    for pos, (_, urls) in enumerate(indexed):
        for url in urls:
            owner.setdefault(url, pos)
    assigned: list[tuple[ArticleSource, list[str]]] = [(source, []) for source, _ in indexed]
    for url in sorted(owner):
        assigned[owner[url]][1].append(url)
    return assigned


async def ingest_publishers(
    sources: list[ArticleSource],
    logger: logging.Logger | None = None,
    stats: FetchStats | None = None,
) -> list[RawArticle]:
    """Index every publisher, then fetch each publisher's candidates.

    Publishers are processed one after another, each with its own bound.
    A publisher whose index discovery fails contributes nothing.
    """
    stats = stats if stats is not None else FetchStats()

    indexed: list[tuple[ArticleSource, set[str]]] = []
    for source in sources:
        started = time.perf_counter()
        with start_span("ingest.index", kind="chain", attributes={"publisher": source.name}) as span:
            try:
                urls = await source.index()
            except Exception as exc:  # noqa: BLE001
                log_event(
                    logger,
                    "Index discovery failed",
                    event="index_failed",
                    publisher=source.name,
                    error=str(exc),
                )
                continue
            set_span_output(span, {"candidates": len(urls)})
        log_event(
            logger,
            "Publisher indexed",
            event="publisher_indexed",
            publisher=source.name,
            candidates=len(urls),
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )
        indexed.append((source, urls))

    articles: list[RawArticle] = []
    for source, urls in assign_candidates(indexed):
        started = time.perf_counter()
        fetched = await fetch_all(source, urls, source.concurrency, logger=logger, stats=stats)
        log_event(
            logger,
            "Publisher fetched",
            event="publisher_fetched",
            publisher=source.name,
            requested=len(urls),
            fetched=len(fetched),
            concurrency=source.concurrency,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )
        articles.extend(fetched)
    return articles
