"""
Main pipeline orchestration for Text News.

This module coordinates the entire workflow:
1. Check that both output directories are writable (fatal otherwise)
2. Index every enabled publisher and fetch its articles
3. Enrich each article through the backoff-wrapped LLM provider
4. Write the JSON snapshot and the Markdown edition for the current bucket
5. Merge the edition into the accumulating index documents

Everything network-bound runs on one asyncio event loop; files are
written only after the concurrent stages have finished.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
import logging
from pathlib import Path
import time

import httpx
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from .config import AppConfig
from .core.errors import OutputDirectoryError
from .core.text import time_of_day
from .core.types import EnrichedArticle, FrontPage, RawArticle
from .enrich import EnrichStats, QuarantineStore, enrich_all
from .fetch.client import build_client
from .fetch.orchestrator import FetchStats, ingest_publishers
from .llm.providers import EnrichmentProvider, create_provider
from .llm.retry import RetryAsk
from .llm.tracing import set_span_output, setup_langfuse, start_span
from .output.indexes import update_indexes
from .output.json_writer import write_json
from .output.markdown import write_markdown
from .sources.adapter import SourceAdapter
from .sources.publishers import PublisherConfig, get_publisher
from .utils.logging import log_event, setup_llm_logger, setup_logging

PROBE_FILENAME = ".write_probe"


@dataclass
class RunSummary:
    """Outcome of one pipeline run.

    Attributes:
        front_page: The edition that was produced
        json_path: Snapshot path, or None if writing it failed
        markdown_path: Edition path, or None if skipped or failed
        index_paths: Index documents that were updated
        quarantine_paths: Raw replies written to quarantine
        fetch_stats: Fetch stage counters
        enrich_stats: Enrichment stage counters
        elapsed_seconds: Wall-clock duration of the run
    """

    front_page: FrontPage
    json_path: Path | None = None
    markdown_path: Path | None = None
    index_paths: list[Path] = field(default_factory=list)
    quarantine_paths: list[Path] = field(default_factory=list)
    fetch_stats: FetchStats = field(default_factory=FetchStats)
    enrich_stats: EnrichStats = field(default_factory=EnrichStats)
    elapsed_seconds: float = 0.0


def ensure_writable_dir(path: Path) -> None:
    """Create `path` and prove it is writable by creating and removing a probe file.

    Raises:
        OutputDirectoryError: If the directory cannot be created or written
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        probe = path / PROBE_FILENAME
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
    except OSError as exc:
        raise OutputDirectoryError(f"Output directory is not writable: {path} ({exc})") from exc


def resolve_publishers(cfg: AppConfig, only: list[str] | None = None) -> list[PublisherConfig]:
    names = only or cfg.sources.enabled
    return [get_publisher(name, cfg.sources.overrides.get(name)) for name in names]


def run_pipeline(
    json_dir: Path,
    md_dir: Path,
    cfg: AppConfig,
    show_progress: bool = True,
    console: Console | None = None,
    only: list[str] | None = None,
    now: datetime | None = None,
    provider: EnrichmentProvider | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RunSummary:
    """Run the complete ingest pipeline for the current (date, time of day) bucket.

    Args:
        json_dir: Directory for JSON snapshots, quarantine and run logs
        md_dir: Directory for Markdown editions and index documents
        cfg: Application configuration
        show_progress: Whether to display a progress bar during enrichment
        console: Rich console for output (creates default if None)
        only: Publisher names to run instead of the configured list
        now: Run start time; defaults to the local clock
        provider: Pre-built enrichment provider; built from config if None
        transport: Optional httpx transport for the page-fetching client

    Returns:
        RunSummary describing what was produced

    Raises:
        OutputDirectoryError: If either output directory is not writable
    """
    console = console or Console()
    started = time.perf_counter()

    # Nothing touches the network before both directories are proven writable.
    ensure_writable_dir(json_dir)
    ensure_writable_dir(md_dir)

    moment = now or datetime.now().astimezone()
    front_page = FrontPage(
        local_date=moment.strftime("%Y-%m-%d"),
        time_of_day=time_of_day(moment),
        local_time=moment.strftime("%H:%M:%S"),
    )
    bucket = f"{front_page.local_date}_{front_page.time_of_day}"
    log_dir = json_dir / cfg.logging.dirname
    logger = setup_logging(cfg.logging, log_dir / f"{bucket}.jsonl")
    llm_logger = setup_llm_logger(cfg.logging, log_dir / f"{bucket}.llm.jsonl")
    setup_langfuse(cfg.langfuse)

    publishers = resolve_publishers(cfg, only)
    log_event(
        logger,
        "Run started",
        event="run_started",
        bucket=bucket,
        publishers=[p.name for p in publishers],
        json_dir=str(json_dir),
        md_dir=str(md_dir),
    )

    summary = RunSummary(front_page=front_page)
    quarantine = QuarantineStore(json_dir / cfg.enrich.quarantine_dirname)

    enriched = asyncio.run(
        _run_async(
            cfg,
            publishers,
            quarantine,
            summary,
            logger,
            llm_logger,
            provider,
            transport,
            console,
            show_progress,
        )
    )

    front_page.articles = sorted(enriched, key=lambda a: (a.category, a.title))
    summary.quarantine_paths = quarantine.flush(logger)
    _write_outputs(front_page, json_dir, md_dir, cfg, summary, logger)

    summary.elapsed_seconds = time.perf_counter() - started
    log_event(
        logger,
        "Run finished",
        event="run_finished",
        bucket=bucket,
        articles=len(front_page.articles),
        fetch=vars(summary.fetch_stats),
        enrich=summary.enrich_stats.as_dict(),
        elapsed_seconds=round(summary.elapsed_seconds, 2),
    )
    _render_summary(summary, console)
    return summary


async def _run_async(
    cfg: AppConfig,
    publishers: list[PublisherConfig],
    quarantine: QuarantineStore,
    summary: RunSummary,
    logger: logging.Logger,
    llm_logger: logging.Logger | None,
    provider: EnrichmentProvider | None,
    transport: httpx.AsyncBaseTransport | None,
    console: Console,
    show_progress: bool,
) -> list[EnrichedArticle]:
    owns_provider = provider is None
    if provider is None:
        provider = create_provider(cfg.provider, cfg.enrich, cfg.logging, llm_logger)
    try:
        async with build_client(cfg.fetch, transport=transport) as client:
            adapters = [SourceAdapter(p, client, cfg.fetch, logger) for p in publishers]
            with start_span("pipeline.ingest", kind="chain") as span:
                raw_articles = await ingest_publishers(adapters, logger=logger, stats=summary.fetch_stats)
                set_span_output(span, {"articles": len(raw_articles)})
        log_event(
            logger,
            "Fetch stage complete",
            event="fetch_complete",
            articles=len(raw_articles),
            failed=summary.fetch_stats.failed,
            skipped=summary.fetch_stats.skipped,
            errors=summary.fetch_stats.errors,
        )

        asker = RetryAsk(
            provider,
            max_retries=cfg.enrich.max_retries,
            base_delay=cfg.enrich.base_delay,
            max_delay=cfg.enrich.max_delay,
            logger=logger,
        )
        return await _enrich(asker, raw_articles, cfg, quarantine, summary, logger, console, show_progress)
    finally:
        if owns_provider:
            await provider.aclose()


async def _enrich(
    asker: RetryAsk,
    raw_articles: list[RawArticle],
    cfg: AppConfig,
    quarantine: QuarantineStore,
    summary: RunSummary,
    logger: logging.Logger,
    console: Console,
    show_progress: bool,
) -> list[EnrichedArticle]:
    if not show_progress or not raw_articles:
        return await enrich_all(asker, raw_articles, cfg.enrich, quarantine, summary.enrich_stats, logger)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Enrich", total=len(raw_articles))
        return await enrich_all(
            asker,
            raw_articles,
            cfg.enrich,
            quarantine,
            summary.enrich_stats,
            logger,
            on_done=lambda: progress.advance(task, 1),
        )


def _write_outputs(
    front_page: FrontPage,
    json_dir: Path,
    md_dir: Path,
    cfg: AppConfig,
    summary: RunSummary,
    logger: logging.Logger,
) -> None:
    try:
        summary.json_path = write_json(front_page, json_dir)
        log_event(logger, "JSON snapshot written", event="json_written", path=str(summary.json_path))
    except OSError as exc:
        log_event(logger, "JSON snapshot write failed", event="json_write_failed", error=str(exc))

    if cfg.output.write_markdown:
        try:
            summary.markdown_path = write_markdown(front_page, md_dir, cfg.output.site_title)
            log_event(logger, "Markdown edition written", event="markdown_written", path=str(summary.markdown_path))
        except OSError as exc:
            log_event(logger, "Markdown edition write failed", event="markdown_write_failed", error=str(exc))

    if cfg.output.write_indexes:
        summary.index_paths = update_indexes(front_page, md_dir, logger)


def _render_summary(summary: RunSummary, console: Console) -> None:
    """Display the run summary table to the console."""
    fetch = summary.fetch_stats
    enrich = summary.enrich_stats
    table = Table(title=f"Edition {summary.front_page.local_date} {summary.front_page.time_of_day}")
    table.add_column("Stage")
    table.add_column("Result", justify="right")
    table.add_row("Pages fetched", f"{fetch.success}/{fetch.total}")
    table.add_row("Fetch failures", str(fetch.failed))
    table.add_row("Pages without content", str(fetch.skipped))
    for publisher, count in sorted(fetch.per_publisher.items()):
        table.add_row(f"  {publisher}", str(count))
    table.add_row("Articles enriched", f"{enrich.success}/{enrich.total}")
    table.add_row("Truncated replies", str(enrich.truncated))
    table.add_row("Unparseable replies", str(enrich.parse_failed))
    table.add_row("Failed calls", str(enrich.call_failed))
    table.add_row("Quarantined", str(len(summary.quarantine_paths)))
    table.add_row("Elapsed", f"{summary.elapsed_seconds:.1f}s")
    console.print(table)
    if summary.json_path is not None:
        console.print(f"JSON snapshot: {summary.json_path}")
    if summary.markdown_path is not None:
        console.print(f"Markdown edition: {summary.markdown_path}")
