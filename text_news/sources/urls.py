"""URL normalization and origin checks for candidate article links."""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urljoin, urlsplit, urlunsplit

from .publishers import PublisherConfig


AGGREGATOR_HOSTS = frozenset({"news.google.com", "www.google.com", "google.com"})

_SKIP_PREFIXES = ("javascript:", "mailto:", "tel:", "data:", "#")


def absolutize(href: str, base_url: str) -> str | None:
    """Resolve `href` against `base_url`, keeping query and fragment."""
    href = (href or "").strip()
    if not href or href.lower().startswith(_SKIP_PREFIXES):
        return None
    absolute = urljoin(base_url, href)
    parts = urlsplit(absolute)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return absolute


def strip_url(url: str) -> str:
    """Drop query and fragment, lowercase the host and force https."""
    parts = urlsplit(url)
    return urlunsplit(("https", parts.netloc.lower(), parts.path or "/", "", ""))


def host_of(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


def is_aggregator(url: str) -> bool:
    return host_of(url) in AGGREGATOR_HOSTS


def accepts(cfg: PublisherConfig, url: str) -> bool:
    """Return whether `url` is on the publisher's hosts and article path."""
    parts = urlsplit(url)
    if (parts.hostname or "").lower() not in cfg.hosts:
        return False
    return re.search(cfg.path_pattern, parts.path) is not None


def normalize_candidate(cfg: PublisherConfig, href: str, base_url: str) -> str | None:
    """Turn a raw href into a CandidateURL for `cfg`, or None if it does not qualify."""
    absolute = absolutize(href, base_url)
    if absolute is None:
        return None
    url = strip_url(absolute)
    if not accepts(cfg, url):
        return None
    return url


def unwrap_redirect_param(url: str) -> str | None:
    """Return the destination carried in a `q=`/`url=` query parameter, if any."""
    query = parse_qs(urlsplit(url).query)
    for key in ("q", "url", "u"):
        for value in query.get(key, []):
            if value.startswith(("http://", "https://")):
                return value
    return None
