"""
Link discovery primitives used by index strategies.

Each function takes a fetched document and returns raw link strings in
document order. Normalization and origin checks happen in the adapter;
these helpers only find things that look like links.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterator
from urllib.parse import unquote, urljoin, urlsplit

from bs4 import BeautifulSoup, Tag
import feedparser


SHELL_MARKERS = (
    "consent.google.com",
    "unusual traffic from your computer network",
    "just a moment...",
    "verifying you are human",
    "enable javascript",
)

_JSONLD_URL_KEYS = ("url", "@id", "mainEntityOfPage")
_FEED_LINK_RE = re.compile(r"<link>\s*(?:<!\[CDATA\[)?\s*(https?://[^<\s\]]+)", re.IGNORECASE)
_FEED_GUID_RE = re.compile(r"<guid[^>]*>\s*(?:<!\[CDATA\[)?\s*(https?://[^<\s\]]+)", re.IGNORECASE)
_META_REFRESH_URL_RE = re.compile(r"url\s*=\s*['\"]?([^'\";]+)", re.IGNORECASE)


def is_shell_page(html: str, threshold: int) -> bool:
    """Heuristically detect a client-rendered or interstitial listing page."""
    if len(html.encode("utf-8")) < threshold:
        return True
    lowered = html.lower()
    return any(marker in lowered for marker in SHELL_MARKERS)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def select_links(soup: BeautifulSoup, selector: str) -> list[str]:
    """Return hrefs for every element matched by `selector`.

    Anchors give their own href; other elements give the first descendant
    anchor, or failing that the nearest enclosing anchor.
    """
    links: list[str] = []
    for el in soup.select(selector):
        href = _href_of(el)
        if href:
            links.append(href)
    return links


def _href_of(el: Tag) -> str | None:
    if el.name == "a" and el.get("href"):
        return str(el["href"])
    inner = el.find("a", href=True)
    if isinstance(inner, Tag):
        return str(inner["href"])
    outer = el.find_parent("a", href=True)
    if isinstance(outer, Tag):
        return str(outer["href"])
    return None


def jsonld_blocks(soup: BeautifulSoup) -> list[Any]:
    """Parse every `application/ld+json` script, skipping invalid ones."""
    blocks: list[Any] = []
    for script in soup.select('script[type="application/ld+json"]'):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            blocks.append(json.loads(raw))
        except json.JSONDecodeError:
            continue
    return blocks


def jsonld_links(soup: BeautifulSoup) -> list[str]:
    """Collect URL-bearing fields from JSON-LD, including ItemList elements."""
    links: list[str] = []
    for block in jsonld_blocks(soup):
        links.extend(_walk_urls(block))
    return links


def _walk_urls(value: Any) -> Iterator[str]:
    if isinstance(value, list):
        for item in value:
            yield from _walk_urls(item)
        return
    if not isinstance(value, dict):
        return
    for key in _JSONLD_URL_KEYS:
        field = value.get(key)
        if isinstance(field, str) and (field.startswith("/") or field.startswith("http")):
            yield field
    for field in value.values():
        if isinstance(field, (dict, list)):
            yield from _walk_urls(field)


def pattern_links(html: str, pattern: str) -> list[str]:
    """Regex scan of raw markup; group 1 is the link when the pattern has one."""
    regex = re.compile(pattern)
    links = []
    for match in regex.finditer(html):
        links.append(match.group(1) if regex.groups else match.group(0))
    return links


def feed_links(xml: str) -> list[str]:
    """Extract item links from an RSS/Atom document.

    The feed parser is tried first; when it finds no entry links the raw
    document is scanned for `<link>` and `<guid>` URLs instead.
    """
    parsed = feedparser.parse(xml.encode("utf-8"))
    links = [entry.get("link") for entry in parsed.entries if entry.get("link")]
    if links:
        return links
    return _regex_feed_links(xml)


def _regex_feed_links(xml: str) -> list[str]:
    links = []
    # Channel-level <link> points at the feed's site, not an item.
    items = re.split(r"<item\b|<entry\b", xml, flags=re.IGNORECASE)[1:]
    for chunk in items:
        match = _FEED_LINK_RE.search(chunk) or _FEED_GUID_RE.search(chunk)
        if match:
            links.append(match.group(1).strip())
    return links


def find_destination(html: str, page_url: str, hosts: tuple[str, ...]) -> str | None:
    """Find the publisher URL an aggregator interstitial page points to.

    Tried in order: meta refresh, first anchor on an accepted host, og:url,
    then a raw-text search for the publisher origin in literal, slash-escaped
    and percent-encoded form.
    """
    soup = parse_html(html)

    refresh = soup.find("meta", attrs={"http-equiv": re.compile("^refresh$", re.IGNORECASE)})
    if isinstance(refresh, Tag):
        match = _META_REFRESH_URL_RE.search(str(refresh.get("content") or ""))
        if match:
            target = urljoin(page_url, match.group(1).strip())
            if _on_hosts(target, hosts):
                return target

    for anchor in soup.find_all("a", href=True):
        target = urljoin(page_url, str(anchor["href"]))
        if _on_hosts(target, hosts):
            return target

    og = soup.find("meta", attrs={"property": "og:url"})
    if isinstance(og, Tag):
        target = str(og.get("content") or "").strip()
        if target and _on_hosts(target, hosts):
            return target

    return search_encoded_origin(html, hosts)


def search_encoded_origin(text: str, hosts: tuple[str, ...]) -> str | None:
    for host in hosts:
        escaped_host = re.escape(host)
        patterns = (
            (rf"https://{escaped_host}/[^\s\"'<>\\]+", lambda s: s),
            (rf"https:\\/\\/{escaped_host}\\/(?:[^\s\"'<>\\]|\\/)+", lambda s: s.replace("\\/", "/")),
            (rf"https%3A%2F%2F{escaped_host}%2F[^\s\"'<>&]+", unquote),
        )
        for pattern, decode in patterns:
            match = re.search(pattern, text, flags=re.IGNORECASE)
            if match:
                return decode(match.group(0))
    return None


def _on_hosts(url: str, hosts: tuple[str, ...]) -> bool:
    return (urlsplit(url).hostname or "").lower() in hosts
