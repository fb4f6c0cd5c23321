"""
Article page extraction with ordered fallbacks.

Three things are pulled from a page:
1. Published-at: JSON-LD, meta tags, <time datetime>, free-text elements
2. Title: og:title, publisher title elements, first <h1>
3. Body: publisher body containers in order, then trafilatura and
   readability as generic fallbacks

The result is a plain-text document with "Published:" and "Title:"
header lines followed by the body paragraphs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Iterator

from bs4 import BeautifulSoup, Tag
from readability import Document
import trafilatura

from .discovery import jsonld_blocks


ARTICLE_TYPES = frozenset({"NewsArticle", "Article", "Report", "BlogPosting"})

META_DATE_QUERIES = (
    'meta[property="article:published_time"]',
    'meta[itemprop="datePublished"]',
    'meta[name="date"]',
    'meta[property="og:updated_time"]',
)


@dataclass
class PublishedAt:
    """Publication time found on a page.

    Attributes:
        value: Parsed timestamp, or None when no candidate parsed
        raw: The candidate string the value came from, or the best unparsed one
        origin: Which extraction step produced it ("jsonld", "meta", "time", "text")
    """

    value: datetime | None
    raw: str | None
    origin: str | None


def is_placeholder(value: str) -> bool:
    """Detect unrendered template tokens such as "[[publish_date]]"."""
    return "[" in value and "]" in value


def parse_datetime(value: str) -> datetime | None:
    text = value.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def extract_published_at(soup: BeautifulSoup, date_selectors: tuple[str, ...] = ()) -> PublishedAt:
    """Return the first parseable, non-placeholder publication date on the page."""
    fallback: tuple[str, str] | None = None
    for raw, origin in _date_candidates(soup, date_selectors):
        raw = raw.strip()
        if not raw or is_placeholder(raw):
            continue
        parsed = parse_datetime(raw)
        if parsed is not None:
            return PublishedAt(parsed, raw, origin)
        if fallback is None:
            fallback = (raw, origin)
    if fallback is None:
        return PublishedAt(None, None, None)
    return PublishedAt(None, fallback[0], fallback[1])


def _date_candidates(soup: BeautifulSoup, date_selectors: tuple[str, ...]) -> Iterator[tuple[str, str]]:
    for block in jsonld_blocks(soup):
        for value in _jsonld_dates(block):
            yield value, "jsonld"

    for query in META_DATE_QUERIES:
        for meta in soup.select(query):
            content = meta.get("content")
            if content:
                yield str(content), "meta"

    for el in soup.select("time[datetime]"):
        yield str(el["datetime"]), "time"

    for query in date_selectors:
        for el in soup.select(query):
            value = el.get("datetime") or el.get_text(" ", strip=True)
            if value:
                yield str(value), "text"


def _jsonld_dates(value: Any, nested_article: bool = False) -> Iterator[str]:
    if isinstance(value, list):
        for item in value:
            yield from _jsonld_dates(item, nested_article)
        return
    if not isinstance(value, dict):
        return
    if nested_article or _is_article_type(value.get("@type")):
        for key in ("datePublished", "dateModified"):
            field = value.get(key)
            if isinstance(field, str):
                yield field
    for key, field in value.items():
        if isinstance(field, (dict, list)):
            yield from _jsonld_dates(field, nested_article=(key == "article"))


def _is_article_type(value: Any) -> bool:
    if isinstance(value, str):
        return value in ARTICLE_TYPES
    if isinstance(value, list):
        return any(isinstance(v, str) and v in ARTICLE_TYPES for v in value)
    return False


def extract_title(soup: BeautifulSoup, title_selectors: tuple[str, ...] = ()) -> str | None:
    for query in ('meta[property="og:title"]', 'meta[name="title"]'):
        meta = soup.select_one(query)
        if isinstance(meta, Tag):
            content = str(meta.get("content") or "").strip()
            if content:
                return content
    for query in (*title_selectors, "h1"):
        el = soup.select_one(query)
        if isinstance(el, Tag):
            text = _clean(el.get_text())
            if text:
                return text
    return None


def extract_body(soup: BeautifulSoup, body_selectors: tuple[str, ...]) -> str | None:
    """Return paragraph text of the first body selector that yields any.

    Script, style and noscript elements are removed from `soup` first.
    """
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    for query in body_selectors:
        paragraphs: list[str] = []
        for el in soup.select(query):
            if el.name == "p":
                paragraphs.append(_clean(el.get_text()))
                continue
            inner = el.find_all("p")
            if inner:
                paragraphs.extend(_clean(p.get_text()) for p in inner)
            else:
                paragraphs.append(_clean(el.get_text()))
        text = "\n\n".join(p for p in paragraphs if p)
        if text:
            return text
    return None


def extract_generic_body(html: str) -> str | None:
    """Last-resort body extraction with trafilatura, then readability."""
    text = trafilatura.extract(html)
    if text and text.strip():
        return text.strip()
    summary_html = Document(html).summary()
    soup = BeautifulSoup(summary_html, "html.parser")
    paragraphs = [_clean(p.get_text()) for p in soup.find_all("p")]
    text = "\n\n".join(p for p in paragraphs if p)
    return text or None


def compose_content(title: str | None, published: PublishedAt, body: str) -> str:
    header: list[str] = []
    if published.value is not None:
        header.append(f"Published: {published.value.isoformat()}")
    elif published.raw:
        header.append(f"Published(raw): {published.raw}")
    if title:
        header.append(f"Title: {title}")
    if not header:
        return body
    return "\n".join(header) + "\n\n" + body


def _clean(text: str) -> str:
    return " ".join(text.split())
