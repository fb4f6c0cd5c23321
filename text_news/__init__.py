"""
Text News - multi-publisher news ingest and enrichment pipeline.

This package discovers articles on a fixed set of text-friendly news
publishers, extracts their content, enriches each article with an LLM
into a structured analysis, and writes JSON/Markdown editions plus
accumulating Markdown index documents.

Main entry point is the CLI via `text-news run` command.

Example:
    $ text-news run -j out/json -m out/markdown
"""

__all__ = ["__version__", "slugify_title", "source_tag", "time_of_day"]
__version__ = "0.1.0"

from .core.text import slugify_title, source_tag, time_of_day
