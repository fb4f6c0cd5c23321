"""
Idempotent merging of accumulating Markdown index documents.

An index document is a header followed by nested list blocks: a group
heading line, then more-deeply-indented item lines, each optionally
followed by even deeper detail lines. `merge_entry` adds a (group, item,
details) triple only where it is missing, so replaying a run leaves every
index byte-for-byte unchanged.

Three documents are maintained:
- <date>.md: editions of one day, their categories and articles
- daily_news.md: every day and its editions, newest first
- SUMMARY.md: book navigation, newest day first under "Daily News"
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Sequence

from ..core.text import collapse_whitespace, slugify_title, source_tag, upcase
from ..core.types import FrontPage
from ..utils.logging import log_event
from .markdown import edition_filename, group_by_category


@dataclass(frozen=True)
class IndexLayout:
    """Shape of one index document.

    Attributes:
        header: Lines of a freshly created document
        anchor: Substring of the line new groups are inserted after; None appends
        gap_before_group: Insert a blank line ahead of each new group block
    """

    header: tuple[str, ...]
    anchor: str | None = None
    gap_before_group: bool = False


def date_toc_layout(date: str) -> IndexLayout:
    return IndexLayout(header=(f"# Editions published on {date}", ""))


CHRONOLOGICAL_LAYOUT = IndexLayout(
    header=("# Daily News Index", ""),
    anchor="# Daily News Index",
    gap_before_group=True,
)

SUMMARY_LAYOUT = IndexLayout(
    header=(
        "# Summary",
        "",
        "[Home](./home.md)",
        "- [Daily News](./daily_news.md)",
    ),
    anchor="- [Daily News]",
)


def _indent(line: str) -> int:
    expanded = line.expandtabs(4)
    return len(expanded) - len(expanded.lstrip())


def _block_end(lines: list[str], start: int) -> int:
    """Index just past the run of lines indented deeper than lines[start]."""
    base = _indent(lines[start])
    end = start + 1
    while end < len(lines) and lines[end].strip() and _indent(lines[end]) > base:
        end += 1
    return end


def _find(lines: list[str], target: str, start: int, stop: int) -> int | None:
    wanted = target.rstrip()
    for idx in range(start, stop):
        if lines[idx].rstrip() == wanted:
            return idx
    return None


def _anchor_position(lines: list[str], layout: IndexLayout) -> int:
    if layout.anchor is not None:
        for idx, line in enumerate(lines):
            if layout.anchor in line:
                return idx + 1
    return len(lines)


def _one_line(line: str) -> str:
    return " ".join(line.splitlines())


def merge_lines(
    lines: list[str],
    layout: IndexLayout,
    group: str,
    item: str | None,
    details: Sequence[str] = (),
) -> bool:
    """Merge one entry into `lines` in place; returns whether anything changed.

    Line breaks inside an entry are flattened to spaces so that each entry
    reads back as exactly one line.
    """
    group = _one_line(group)
    item = None if item is None else _one_line(item)
    details = [_one_line(line) for line in details]
    group_idx = _find(lines, group, 0, len(lines))
    if group_idx is None:
        block = [group]
        if item is not None:
            block.extend([item, *_unique(details)])
        if layout.gap_before_group:
            block.insert(0, "")
        pos = _anchor_position(lines, layout)
        lines[pos:pos] = block
        return True

    if item is None:
        return False

    group_end = _block_end(lines, group_idx)
    item_idx = _find(lines, item, group_idx + 1, group_end)
    if item_idx is None:
        lines[group_end:group_end] = [item, *_unique(details)]
        return True

    item_end = _block_end(lines, item_idx)
    present = {line.rstrip() for line in lines[item_idx + 1 : item_end]}
    missing = [line for line in _unique(details) if line.rstrip() not in present]
    if not missing:
        return False
    lines[item_end:item_end] = missing
    return True


def _unique(details: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for line in details:
        if line in seen:
            continue
        seen.add(line)
        out.append(line)
    return out


def load_lines(path: Path, layout: IndexLayout) -> list[str]:
    if not path.exists():
        return list(layout.header)
    return path.read_text(encoding="utf-8").splitlines()


def save_lines(path: Path, lines: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def merge_entry(
    path: Path,
    layout: IndexLayout,
    group: str,
    item: str | None,
    details: Sequence[str] = (),
) -> bool:
    """Merge one (group, item, details) entry into the document at `path`.

    A missing document is created from the layout header. Returns whether
    the document content changed.
    """
    existed = path.exists()
    lines = load_lines(path, layout)
    changed = merge_lines(lines, layout, group, item, details)
    if changed or not existed:
        save_lines(path, lines)
    return changed


def _edition_label(front_page: FrontPage) -> str:
    return f"[{upcase(front_page.time_of_day)}](./{edition_filename(front_page)})"


def update_date_toc(front_page: FrontPage, md_dir: Path) -> Path:
    path = md_dir / f"{front_page.local_date}.md"
    layout = date_toc_layout(front_page.local_date)
    edition_file = edition_filename(front_page)
    group = f"- {_edition_label(front_page)}"
    categories = group_by_category(front_page.articles)
    if not categories:
        merge_entry(path, layout, group, None)
        return path
    for category, articles in categories:
        category = collapse_whitespace(category)
        item = f"\t- [**{category}**](./{edition_file}#{slugify_title(category)})"
        details = []
        for article in articles:
            tag = source_tag(article.source)
            prefix = f"<small>`{tag}`</small> - " if tag else ""
            title = collapse_whitespace(article.title)
            details.append(f"\t\t- {prefix}[{title}](./{edition_file}#{slugify_title(title)})")
        merge_entry(path, layout, group, item, details)
    return path


def update_chronological_index(front_page: FrontPage, md_dir: Path) -> Path:
    path = md_dir / "daily_news.md"
    date = front_page.local_date
    merge_entry(
        path,
        CHRONOLOGICAL_LAYOUT,
        f"- [**{date}**](./{date}.md)",
        f"    - {_edition_label(front_page)}",
    )
    return path


def update_summary(front_page: FrontPage, md_dir: Path) -> Path:
    path = md_dir / "SUMMARY.md"
    date = front_page.local_date
    merge_entry(
        path,
        SUMMARY_LAYOUT,
        f"    - [{date}](./{date}.md)",
        f"        - {_edition_label(front_page)}",
    )
    return path


def update_indexes(front_page: FrontPage, md_dir: Path, logger: logging.Logger | None = None) -> list[Path]:
    """Update all three index documents; a failure in one does not stop the others."""
    written: list[Path] = []
    for name, update in (
        ("date_toc", update_date_toc),
        ("chronological", update_chronological_index),
        ("summary", update_summary),
    ):
        try:
            path = update(front_page, md_dir)
        except OSError as exc:
            log_event(logger, "Index update failed", event="index_write_failed", index=name, error=str(exc))
            continue
        written.append(path)
        log_event(logger, "Index updated", event="index_updated", index=name, path=str(path))
    return written
