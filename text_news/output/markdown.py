"""Markdown rendering of a FrontPage edition."""

from __future__ import annotations

from itertools import groupby
from pathlib import Path

from ..core.text import source_tag
from ..core.types import EnrichedArticle, FrontPage


def group_by_category(articles: list[EnrichedArticle]) -> list[tuple[str, list[EnrichedArticle]]]:
    """Group articles by category; categories and titles in alphabetical order."""
    ordered = sorted(articles, key=lambda a: (a.category, a.title))
    return [(category, list(items)) for category, items in groupby(ordered, key=lambda a: a.category)]


def render_front_page(front_page: FrontPage, site_title: str = "Awful Times") -> str:
    lines = [f"# {site_title}", "", f"#### Edition published at {front_page.local_time}", ""]
    for category, articles in group_by_category(front_page.articles):
        lines.extend([f"# {category}", ""])
        for article in articles:
            lines.extend(_render_article(article))
    return "\n".join(lines) + "\n"


def _render_article(article: EnrichedArticle) -> list[str]:
    tag = source_tag(article.source)
    heading = f"## {article.title} - <small>`{tag}`</small>" if tag else f"## {article.title}"
    lines = [heading, ""]
    if article.source:
        lines.append(f"- [source]({article.source})")
    lines.append(f"- _Published: {article.date_of_publication} {article.time_of_publication}_")
    lines.append(f"- **{article.category}**")
    if article.tags:
        lines.append(f"- <small>tags: `{', '.join(article.tags)}`</small>")
    lines.extend(["", "### Summary", "", article.summary.strip(), ""])

    if article.key_takeaways:
        lines.append("### Key Takeaways")
        lines.extend(f"  - {takeaway}" for takeaway in article.key_takeaways)
        lines.append("")

    if article.named_entities:
        lines.append("### Named Entities")
        for entity in article.named_entities:
            lines.append(f"- **{entity.name}**")
            lines.append(f"    - {entity.what_is_this_entity}")
            lines.append(f"    - {entity.why_is_this_entity_relevant}")
        lines.append("")

    if article.important_dates:
        lines.append("### Important Dates")
        for date in article.important_dates:
            lines.append(f"  - **{date.date_mentioned}**")
            lines.append(f"    - {date.description}")
        lines.append("")

    if article.important_timeframes:
        lines.append("### Important Timeframes")
        for frame in article.important_timeframes:
            lines.append(f"  - **From _{frame.start}_ to _{frame.end}_**")
            lines.append(f"    - {frame.description}")
        lines.append("")

    lines.extend(["---", ""])
    return lines


def edition_filename(front_page: FrontPage) -> str:
    return f"{front_page.local_date}_{front_page.time_of_day}.md"


def write_markdown(front_page: FrontPage, md_dir: Path, site_title: str = "Awful Times") -> Path:
    path = md_dir / edition_filename(front_page)
    path.write_text(render_front_page(front_page, site_title), encoding="utf-8")
    return path
