"""Edition writers and accumulating index documents."""

from .indexes import IndexLayout, merge_entry, merge_lines, update_indexes
from .json_writer import write_json
from .markdown import render_front_page, write_markdown

__all__ = [
    "IndexLayout",
    "merge_entry",
    "merge_lines",
    "update_indexes",
    "write_json",
    "render_front_page",
    "write_markdown",
]
