"""
Article enrichment: ask, parse, recover, normalize.

Each raw article is sent through the backoff-wrapped provider and the
reply is validated against the `EnrichedArticle` schema. A reply that was
cut off mid-document gets exactly one more ask; any other parse failure
drops the article. Replies that failed or needed the extra ask are kept
in a quarantine folder for offline inspection.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import json
import logging
from pathlib import Path
import re
from typing import Any, Callable

from pydantic import ValidationError

from .config import EnrichConfig
from .core.errors import ResponseParseError, TruncatedResponse
from .core.normalize import normalize_article
from .core.text import short_hash
from .core.types import EnrichedArticle, RawArticle
from .llm.retry import Asker
from .utils.logging import log_event


def parse_enrichment(raw: str) -> EnrichedArticle:
    """Parse a provider reply into an EnrichedArticle.

    Raises:
        TruncatedResponse: The JSON document ends before it is complete
        ResponseParseError: Any other malformed or schema-invalid reply
    """
    text = _json_candidate(raw)
    try:
        obj, _ = json.JSONDecoder().raw_decode(text)
    except json.JSONDecodeError as exc:
        if is_truncation(exc):
            raise TruncatedResponse(f"Truncated JSON: {exc}", raw) from exc
        raise ResponseParseError(f"Invalid JSON: {exc}", raw) from exc
    if not isinstance(obj, dict):
        raise ResponseParseError(f"Expected a JSON object, got {type(obj).__name__}", raw)
    try:
        return EnrichedArticle.model_validate(obj)
    except ValidationError as exc:
        raise ResponseParseError(f"Schema mismatch: {exc.error_count()} error(s)", raw) from exc


_LITERALS = ("true", "false", "null")
_NUMBER_TAIL = re.compile(r"-?\d*(?:\.\d*)?(?:[eE][-+]?\d*)?")
_HEX_TAIL = re.compile(r"[0-9a-fA-F]{0,4}")


def is_truncation(exc: json.JSONDecodeError) -> bool:
    """Return whether a decode error means the input ended too early.

    Besides errors raised at the very end of the document, this covers a
    cut inside a literal (`nu`, `fal`), inside a number (`-`, `1.`, `2e`)
    and inside a `\\uXXXX` escape.
    """
    if exc.msg.startswith("Unterminated string"):
        return True
    doc = exc.doc
    if exc.pos >= len(doc.rstrip()):
        return True
    rest = doc[exc.pos :].rstrip()
    if exc.msg.startswith("Invalid \\uXXXX escape"):
        backslash = doc.rfind("\\", 0, exc.pos + 1)
        return backslash >= 0 and bool(_HEX_TAIL.fullmatch(doc[backslash + 2 :]))
    if exc.msg.startswith("Expecting value"):
        if any(lit.startswith(rest) for lit in _LITERALS):
            return True
        return rest.startswith("-") and bool(_NUMBER_TAIL.fullmatch(rest))
    # number parsed up to a dangling fraction or exponent
    return rest[0] in ".eE" and doc[exc.pos - 1].isdigit() and bool(_NUMBER_TAIL.fullmatch(rest))


def _json_candidate(raw: str) -> str:
    """Strip Markdown fences and leading prose around the JSON object."""
    text = raw.strip()
    lines = text.splitlines()
    for idx, line in enumerate(lines):
        if line.strip().startswith("```"):
            body: list[str] = []
            for inner in lines[idx + 1 :]:
                if inner.strip().startswith("```"):
                    break
                body.append(inner)
            return "\n".join(body).strip()
    start = text.find("{")
    if start > 0:
        return text[start:]
    return text


@dataclass
class QuarantineRecord:
    index: int
    fingerprint: str
    reason: str
    source: str
    raw: str

    @property
    def filename(self) -> str:
        return f"{self.index:04d}-{self.fingerprint}.txt"


class QuarantineStore:
    """Raw enrichment replies keyed by article index and content fingerprint.

    Records are buffered while enrichment runs and written by `flush`.
    """

    def __init__(self, root: Path):
        self.root = root
        self.records: list[QuarantineRecord] = []

    def add(self, index: int, raw: str, reason: str, source: str) -> QuarantineRecord:
        record = QuarantineRecord(index, short_hash(raw), reason, source, raw)
        self.records.append(record)
        return record

    def flush(self, logger: logging.Logger | None = None) -> list[Path]:
        written: list[Path] = []
        if not self.records:
            return written
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            log_event(logger, "Quarantine folder unavailable", event="quarantine_write_failed", path=str(self.root), error=str(exc))
            return written
        for record in self.records:
            path = self.root / record.filename
            try:
                path.write_text(record.raw, encoding="utf-8")
            except OSError as exc:
                log_event(logger, "Quarantine write failed", event="quarantine_write_failed", path=str(path), error=str(exc))
                continue
            written.append(path)
            log_event(
                logger,
                "Response quarantined",
                event="quarantined",
                index=record.index,
                fingerprint=record.fingerprint,
                reason=record.reason,
                source=record.source,
                path=str(path),
            )
        self.records = []
        return written


@dataclass
class EnrichStats:
    total: int = 0
    success: int = 0
    truncated: int = 0
    parse_failed: int = 0
    call_failed: int = 0

    def as_dict(self) -> dict[str, Any]:
        return dict(vars(self))


async def enrich_article(
    asker: Asker,
    article: RawArticle,
    index: int,
    quarantine: QuarantineStore,
    cfg: EnrichConfig,
    stats: EnrichStats | None = None,
    logger: logging.Logger | None = None,
) -> EnrichedArticle | None:
    """Enrich one article; returns None when it has to be skipped."""
    stats = stats if stats is not None else EnrichStats()

    raw = await _ask(asker, article, index, stats, logger)
    if raw is None:
        return None
    try:
        enriched = parse_enrichment(raw)
    except TruncatedResponse:
        stats.truncated += 1
        quarantine.add(index, raw, "truncated", article.source)
        log_event(logger, "Truncated reply, asking once more", event="enrich_truncated", index=index, source=article.source)
        raw = await _ask(asker, article, index, stats, logger)
        if raw is None:
            return None
        try:
            enriched = parse_enrichment(raw)
        except ResponseParseError as exc:
            return _skip(exc, raw, article, index, quarantine, stats, logger)
    except ResponseParseError as exc:
        return _skip(exc, raw, article, index, quarantine, stats, logger)

    if cfg.quarantine_all:
        quarantine.add(index, raw, "ok", article.source)
    enriched.source = article.source
    enriched.content = article.content
    normalize_article(enriched)
    stats.success += 1
    return enriched


async def _ask(
    asker: Asker,
    article: RawArticle,
    index: int,
    stats: EnrichStats,
    logger: logging.Logger | None,
) -> str | None:
    try:
        return await asker.ask(article.content)
    except Exception as exc:  # noqa: BLE001
        stats.call_failed += 1
        log_event(
            logger,
            "Enrichment call failed",
            event="enrich_failed",
            index=index,
            source=article.source,
            error=f"{type(exc).__name__}: {exc}",
        )
        return None


def _skip(
    exc: ResponseParseError,
    raw: str,
    article: RawArticle,
    index: int,
    quarantine: QuarantineStore,
    stats: EnrichStats,
    logger: logging.Logger | None,
) -> None:
    stats.parse_failed += 1
    reason = "truncated" if isinstance(exc, TruncatedResponse) else "parse_error"
    quarantine.add(index, raw, reason, article.source)
    log_event(
        logger,
        "Unparseable reply, article skipped",
        event="enrich_skipped",
        index=index,
        source=article.source,
        reason=reason,
        error=str(exc),
    )
    return None


async def enrich_all(
    asker: Asker,
    articles: list[RawArticle],
    cfg: EnrichConfig,
    quarantine: QuarantineStore,
    stats: EnrichStats | None = None,
    logger: logging.Logger | None = None,
    on_done: Callable[[], None] | None = None,
) -> list[EnrichedArticle]:
    """Enrich all articles with at most `cfg.concurrency` calls in flight.

    Results are collected in completion order; skipped articles are absent.
    """
    stats = stats if stats is not None else EnrichStats()
    stats.total += len(articles)
    sem = asyncio.Semaphore(max(1, cfg.concurrency))

    async def _one(index: int, article: RawArticle) -> EnrichedArticle | None:
        async with sem:
            return await enrich_article(asker, article, index, quarantine, cfg, stats, logger)

    results: list[EnrichedArticle] = []
    tasks = [asyncio.create_task(_one(idx, article)) for idx, article in enumerate(articles)]
    for next_done in asyncio.as_completed(tasks):
        enriched = await next_done
        if on_done is not None:
            on_done()
        if enriched is not None:
            results.append(enriched)
    return results
