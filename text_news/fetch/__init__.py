"""HTTP client construction and bounded-concurrency fetch orchestration."""

from .client import FetchResult, build_client, fetch_page
from .orchestrator import FetchStats, fetch_all, ingest_publishers

__all__ = ["FetchResult", "FetchStats", "build_client", "fetch_page", "fetch_all", "ingest_publishers"]
