"""Enrichment providers, backoff wrapper and observability."""

from .providers import EnrichmentProvider, GeminiProvider, OpenAICompatibleProvider, available_providers, create_provider
from .retry import RetryAsk, backoff_delay
from .tracing import flush, record_span_error, set_span_output, setup_langfuse, start_span

__all__ = [
    "EnrichmentProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "available_providers",
    "create_provider",
    "RetryAsk",
    "backoff_delay",
    "setup_langfuse",
    "flush",
    "start_span",
    "set_span_output",
    "record_span_error",
]
