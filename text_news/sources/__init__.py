"""Publisher definitions and the multi-strategy source adapter."""

from .adapter import SourceAdapter
from .publishers import IndexStrategy, PublisherConfig, available_publishers, get_publisher

__all__ = [
    "SourceAdapter",
    "IndexStrategy",
    "PublisherConfig",
    "available_publishers",
    "get_publisher",
]
