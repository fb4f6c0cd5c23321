"""
Command-line interface for Text News.

Uses Typer to provide a CLI with options for the output directories and
the main configuration overrides. Supports loading .env files for API
key configuration.
"""

from __future__ import annotations

from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console

from .config import load_config
from .core.errors import OutputDirectoryError
from .llm.tracing import flush
from .runner import run_pipeline
from .sources.publishers import available_publishers, get_publisher

app = typer.Typer(add_completion=False)
console = Console()


@app.command()
def run(
    json_output_dir: Path = typer.Option(..., "--json-output-dir", "-j", help="Directory for JSON snapshots."),
    markdown_output_dir: Path = typer.Option(
        ..., "--markdown-output-dir", "-m", help="Directory for Markdown editions and indexes."
    ),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    only: list[str] | None = typer.Option(
        None, "--only", help="Run only these publishers (repeatable)."
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
    provider: str | None = typer.Option(None, "--provider", help="Enrichment provider name."),
    model: str | None = typer.Option(None, "--model", help="Enrichment model identifier."),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        help="Override provider API key (or set it in the configured env var / .env).",
    ),
):
    """Ingest, enrich and publish one edition.

    Indexes every enabled publisher, fetches and enriches its articles,
    then writes the JSON snapshot, the Markdown edition and the index
    documents for the current date and time of day.

    Args:
        json_output_dir: Directory for JSON snapshots, quarantine and logs
        markdown_output_dir: Directory for Markdown editions and indexes
        config: Optional path to YAML config file
        progress: Whether to show progress bar
        only: Publisher names to run instead of the configured list
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Enable/disable file logging
        provider: Override enrichment provider
        model: Override enrichment model
        api_key: Override LLM provider API key
    """
    load_dotenv()

    cfg = load_config(str(config) if config else None)

    if api_key:
        cfg.provider.api_key = api_key
    if provider:
        cfg.provider.name = provider
    if model:
        cfg.provider.model = model
    if log_level:
        cfg.logging.level = log_level
    if log_file is not None:
        cfg.logging.file = log_file

    try:
        run_pipeline(
            json_output_dir,
            markdown_output_dir,
            cfg,
            show_progress=progress,
            console=console,
            only=only or None,
        )
    except OutputDirectoryError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    finally:
        flush()


@app.command()
def publishers():
    """List registered publishers and their accepted hosts."""
    for name in available_publishers():
        cfg = get_publisher(name)
        console.print(f"{name}: {', '.join(cfg.hosts)} (target={cfg.target}, max={cfg.max_candidates})")


if __name__ == "__main__":
    app()
