"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- ProviderConfig: Enrichment LLM provider settings
- FetchConfig: HTTP fetching and discovery settings
- EnrichConfig: Enrichment concurrency, backoff and quarantine settings
- SourcesConfig: Enabled publishers and per-publisher overrides
- OutputConfig: Output rendering settings
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any

import yaml


@dataclass
class ProviderConfig:
    """Configuration for the enrichment LLM provider.

    Attributes:
        name: Provider name ("gemini" or "openai_compatible")
        model: Model identifier
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        trust_env: Whether to respect system proxy settings for API requests
        timeout_seconds: Request timeout for a single enrichment call
        temperature: Sampling temperature
        max_output_tokens: Upper bound on generated tokens per response
    """

    name: str = "gemini"
    model: str = "gemini-3-flash-preview"
    api_key_env: str = "GOOGLE_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: str | None = None
    trust_env: bool = True
    timeout_seconds: float = 120.0
    temperature: float = 0.2
    max_output_tokens: int = 4096


@dataclass
class FetchConfig:
    """Configuration for HTTP fetching and index discovery.

    Attributes:
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
        default_concurrency: In-flight page fetches per publisher
        resolve_concurrency: In-flight aggregator redirect resolutions
        shell_threshold: Listing pages shorter than this (bytes) are shell pages
        max_connections: Connection pool size of the shared client
    """

    timeout_seconds: float = 20.0
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    default_concurrency: int = 8
    resolve_concurrency: int = 12
    shell_threshold: int = 2048
    max_connections: int = 32


@dataclass
class EnrichConfig:
    """Configuration for the enrichment stage.

    Attributes:
        concurrency: In-flight enrichment calls across all articles
        max_retries: Retries after the first failed call before giving up
        base_delay: First backoff delay in seconds
        max_delay: Backoff delay cap in seconds
        max_chars: Maximum characters of article text sent to the provider
        quarantine_all: Persist every raw response, not only failed ones
        quarantine_dirname: Folder under the JSON output dir for raw responses
        prompt: Prompt template name or path to a template file
    """

    concurrency: int = 8
    max_retries: int = 5
    base_delay: float = 1.0
    max_delay: float = 30.0
    max_chars: int = 24000
    quarantine_all: bool = False
    quarantine_dirname: str = "quarantine"
    prompt: str = "news_parser"


@dataclass
class SourcesConfig:
    """Configuration for which publishers are ingested.

    Attributes:
        enabled: Publisher names to run, in order
        overrides: Per-publisher overrides of concurrency, target, max_candidates
    """

    enabled: list[str] = field(
        default_factory=lambda: ["cnn", "npr", "apnews", "aljazeera", "bbc", "reuters"]
    )
    overrides: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class OutputConfig:
    """Configuration for output generation.

    Attributes:
        site_title: Top-level heading of each Markdown edition
        write_indexes: Whether to update the accumulating index documents
        write_markdown: Whether to render the Markdown edition
    """

    site_title: str = "Awful Times"
    write_indexes: bool = True
    write_markdown: bool = True


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        dirname: Folder under the JSON output dir holding run logs
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls_authors")
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    dirname: str = "logs"
    llm_log_enabled: bool = True
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "none"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        release: Langfuse release identifier (optional)
        redaction: Redaction mode for prompt/response payloads
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    redaction: str = "redact_urls_authors"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    enrich: EnrichConfig = field(default_factory=EnrichConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "provider": dict(vars(cfg.provider)),
        "fetch": dict(vars(cfg.fetch)),
        "enrich": dict(vars(cfg.enrich)),
        "sources": {
            "enabled": list(cfg.sources.enabled),
            "overrides": {k: dict(v) for k, v in cfg.sources.overrides.items()},
        },
        "output": dict(vars(cfg.output)),
        "logging": dict(vars(cfg.logging)),
        "langfuse": dict(vars(cfg.langfuse)),
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        provider=ProviderConfig(**data["provider"]),
        fetch=FetchConfig(**data["fetch"]),
        enrich=EnrichConfig(**data["enrich"]),
        sources=SourcesConfig(**data["sources"]),
        output=OutputConfig(**data["output"]),
        logging=LoggingConfig(**data["logging"]),
        langfuse=LangfuseConfig(**data.get("langfuse", {})),
    )


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)
