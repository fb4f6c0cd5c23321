"""
Multi-strategy source adapter.

`SourceAdapter` runs a `PublisherConfig`: index discovery walks the
configured strategies per listing page until the target count is met,
and `fetch` turns one article URL into a `RawArticle`.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from bs4 import BeautifulSoup

from ..config import FetchConfig
from ..core.errors import PageFetchError
from ..core.types import RawArticle
from ..fetch.client import fetch_page
from ..utils.logging import log_event
from .discovery import (
    feed_links,
    find_destination,
    is_shell_page,
    jsonld_links,
    parse_html,
    pattern_links,
    select_links,
)
from .extraction import (
    compose_content,
    extract_body,
    extract_generic_body,
    extract_published_at,
    extract_title,
)
from .publishers import IndexStrategy, PublisherConfig
from .urls import absolutize, accepts, is_aggregator, normalize_candidate, strip_url, unwrap_redirect_param


class _Collector:
    """Ordered, capped candidate set for one listing page."""

    def __init__(self, cfg: PublisherConfig):
        self.cfg = cfg
        self.urls: list[str] = []
        self.wrapped: list[str] = []
        self._seen: set[str] = set()

    @property
    def full(self) -> bool:
        return len(self.urls) >= self.cfg.target

    def offer(self, href: str, base_url: str) -> None:
        absolute = absolutize(href, base_url)
        if absolute is None:
            return
        if is_aggregator(absolute):
            if absolute not in self.wrapped:
                self.wrapped.append(absolute)
            return
        self.add(absolute)

    def add(self, url: str) -> None:
        if self.full:
            return
        candidate = normalize_candidate(self.cfg, url, url)
        if candidate is None or candidate in self._seen:
            return
        self._seen.add(candidate)
        self.urls.append(candidate)


class SourceAdapter:
    """Index discovery and content extraction for one publisher."""

    def __init__(
        self,
        cfg: PublisherConfig,
        client: httpx.AsyncClient,
        fetch_cfg: FetchConfig,
        logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self.client = client
        self.fetch_cfg = fetch_cfg
        self.logger = logger
        self._resolve_sem = asyncio.Semaphore(max(1, fetch_cfg.resolve_concurrency))

    @property
    def name(self) -> str:
        return self.cfg.name

    @property
    def concurrency(self) -> int:
        return self.cfg.concurrency or self.fetch_cfg.default_concurrency

    async def index(self) -> set[str]:
        """Discover candidate article URLs across all listing pages.

        Returns:
            Normalized, deduplicated URLs on the publisher's accepted origin,
            capped at `max_candidates`
        """
        found: list[str] = []
        listings: tuple[str | None, ...] = self.cfg.listing_urls or (None,)
        for listing_url in listings:
            for url in await self._discover(listing_url):
                if url not in found:
                    found.append(url)
        result = set(found[: self.cfg.max_candidates])
        log_event(
            self.logger,
            "Index discovery complete",
            event="index_complete",
            publisher=self.name,
            candidates=len(result),
        )
        return result

    async def _discover(self, listing_url: str | None) -> list[str]:
        html = ""
        page_url = listing_url or ""
        shell = True
        if listing_url is not None:
            page = await fetch_page(self.client, listing_url)
            if page.text is None:
                log_event(
                    self.logger,
                    "Listing page unavailable",
                    event="listing_unavailable",
                    publisher=self.name,
                    url=listing_url,
                    status_code=page.status_code,
                    error=page.error,
                )
            else:
                html = page.text
                page_url = page.final_url
                shell = is_shell_page(html, self.fetch_cfg.shell_threshold)
                if shell:
                    log_event(
                        self.logger,
                        "Shell listing page detected",
                        event="shell_page_detected",
                        publisher=self.name,
                        url=listing_url,
                        bytes=len(html),
                    )

        strategies = list(self.cfg.index_strategies)
        if shell:
            # Stable sort: feed steps first, everything else keeps its order.
            strategies.sort(key=lambda s: s.kind != "feed")

        soup = parse_html(html) if html else None
        collector = _Collector(self.cfg)
        for strategy in strategies:
            if collector.full:
                break
            before = len(collector.urls)
            await self._run_strategy(strategy, collector, soup, html, page_url)
            log_event(
                self.logger,
                "Index strategy finished",
                event="index_strategy",
                publisher=self.name,
                strategy=strategy.kind,
                selector=strategy.selector or None,
                added=len(collector.urls) - before,
            )
        return collector.urls

    async def _run_strategy(
        self,
        strategy: IndexStrategy,
        collector: _Collector,
        soup: BeautifulSoup | None,
        html: str,
        page_url: str,
    ) -> None:
        if strategy.kind == "feed":
            for feed_url in strategy.urls:
                if collector.full:
                    break
                page = await fetch_page(self.client, feed_url)
                if page.text is None:
                    log_event(
                        self.logger,
                        "Feed unavailable",
                        event="feed_unavailable",
                        publisher=self.name,
                        url=feed_url,
                        error=page.error,
                    )
                    continue
                for href in _limited(feed_links(page.text), strategy.limit):
                    collector.offer(href, page.final_url)
            return

        if strategy.kind == "aggregator":
            await self._resolve_wrapped(collector, strategy.limit)
            return

        if soup is None:
            return
        if strategy.kind == "selectors":
            links = select_links(soup, strategy.selector)
        elif strategy.kind == "jsonld":
            links = jsonld_links(soup)
        elif strategy.kind == "pattern":
            links = pattern_links(html, strategy.pattern)
        else:
            raise ValueError(f"Unknown index strategy: {strategy.kind}")
        for href in _limited(links, strategy.limit):
            collector.offer(href, page_url)

    async def _resolve_wrapped(self, collector: _Collector, limit: int | None) -> None:
        wrapped = _limited(collector.wrapped, limit)
        if not wrapped:
            return
        resolved = await asyncio.gather(*(self._resolve(url) for url in wrapped))
        for url in resolved:
            if url is not None:
                collector.add(url)

    async def _resolve(self, wrapped_url: str) -> str | None:
        """Resolve an aggregator link to the publisher URL it stands for."""
        direct = unwrap_redirect_param(wrapped_url)
        if direct is not None:
            candidate = normalize_candidate(self.cfg, direct, wrapped_url)
            if candidate is not None:
                return candidate

        async with self._resolve_sem:
            page = await fetch_page(self.client, wrapped_url)
        landed = normalize_candidate(self.cfg, page.final_url, wrapped_url)
        if landed is not None:
            return landed
        if page.text:
            target = find_destination(page.text, page.final_url, self.cfg.hosts)
            if target is not None:
                candidate = normalize_candidate(self.cfg, target, page.final_url)
                if candidate is not None:
                    return candidate
        log_event(
            self.logger,
            "Aggregator link unresolved",
            event="aggregator_unresolved",
            publisher=self.name,
            url=wrapped_url,
            status_code=page.status_code,
        )
        return None

    async def fetch(self, url: str) -> RawArticle | None:
        """Retrieve and extract one article.

        Returns None for URLs outside the publisher's origin and for pages
        without body text; raises PageFetchError when the page cannot be
        retrieved.
        """
        if not accepts(self.cfg, url):
            log_event(self.logger, "URL outside publisher origin", event="origin_mismatch", publisher=self.name, url=url)
            return None

        page = await fetch_page(self.client, url)
        if page.text is None:
            raise PageFetchError(url, page.status_code, page.error or "empty response")
        if not accepts(self.cfg, strip_url(page.final_url)):
            log_event(
                self.logger,
                "Redirected outside publisher origin",
                event="origin_mismatch",
                publisher=self.name,
                url=url,
                final_url=page.final_url,
            )
            return None

        soup = parse_html(page.text)
        published = extract_published_at(soup, self.cfg.date_selectors)
        title = extract_title(soup, self.cfg.title_selectors)
        body = extract_body(soup, self.cfg.body_selectors)
        if not body:
            body = self._generic_body(page.text, url)
        if not body:
            log_event(self.logger, "No article content found", event="no_content", publisher=self.name, url=url)
            return None

        return RawArticle(source=url, content=compose_content(title, published, body))

    def _generic_body(self, html: str, url: str) -> str | None:
        try:
            return extract_generic_body(html)
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                "Generic extraction failed",
                event="generic_extract_failed",
                publisher=self.name,
                url=url,
                error=str(exc),
            )
            return None


def _limited(items: list[str], limit: int | None) -> list[str]:
    if limit is None:
        return list(items)
    return list(items[:limit])
