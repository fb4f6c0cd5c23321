"""JSON snapshot of a FrontPage edition."""

from __future__ import annotations

import json
from pathlib import Path

from ..core.types import FrontPage


def snapshot_path(front_page: FrontPage, json_dir: Path) -> Path:
    return json_dir / front_page.local_date / f"{front_page.time_of_day}.json"


def write_json(front_page: FrontPage, json_dir: Path) -> Path:
    """Write the edition snapshot, replacing any earlier run for the same bucket."""
    path = snapshot_path(front_page, json_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(front_page.to_dict(), ensure_ascii=False, indent=2)
    path.write_text(f"{payload}\n", encoding="utf-8")
    return path
