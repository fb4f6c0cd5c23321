"""Small text helpers shared by renderers and index documents."""

from __future__ import annotations

from datetime import datetime, time
import hashlib
from urllib.parse import urlparse


def slugify_title(title: str) -> str:
    """Convert a heading to the anchor slug Markdown renderers generate.

    Args:
        title: Heading text

    Returns:
        Lowercase slug keeping only alphanumerics and hyphens, spaces as hyphens
    """
    kept = "".join(ch for ch in title.lower() if ch.isalnum() or ch in " -")
    return kept.replace(" ", "-")


def upcase(text: str) -> str:
    if not text:
        return text
    return text[0].upper() + text[1:]


def source_tag(url: str | None) -> str | None:
    """Return the registrable label of a URL host ("lite.cnn.com" -> "cnn")."""
    if not url:
        return None
    host = urlparse(url).hostname
    if not host:
        return None
    parts = host.split(".")
    if len(parts) < 2:
        return None
    return parts[-2]


def time_of_day(moment: datetime | time) -> str:
    """Bucket a wall-clock time into an edition name.

    morning is [00:00, 08:00), afternoon [08:00, 16:00), evening the rest.
    """
    hour = moment.hour
    if hour < 8:
        return "morning"
    if hour < 16:
        return "afternoon"
    return "evening"


def short_hash(text: str, length: int = 12) -> str:
    """Return the first `length` hex characters of the SHA-256 of `text`."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def collapse_whitespace(text: str) -> str:
    """Join all whitespace runs, line breaks included, into single spaces."""
    return " ".join(text.split())
