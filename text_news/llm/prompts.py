"""Prompt loading and rendering for the enrichment provider."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from ..config import EnrichConfig


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"
SYSTEM_PROMPT_NAME = "news_parser_system"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    """Load a packaged template by name, or any template file by path."""
    path = Path(name)
    if path.suffix != ".md" or not path.is_file():
        path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def system_prompt() -> str:
    return _load_template(SYSTEM_PROMPT_NAME)


def build_enrichment_prompt(text: str, cfg: EnrichConfig) -> str:
    trimmed = text[: cfg.max_chars]
    return _load_template(cfg.prompt).format(content=trimmed)
