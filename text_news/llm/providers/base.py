"""Abstract interface for the enrichment service."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Any

import httpx

from ...config import EnrichConfig, LoggingConfig, ProviderConfig
from ...utils.logging import log_event, redact_text, truncate_text


class EnrichmentProvider(ABC):
    """Turns article text into the provider's raw analysis reply.

    Providers are text-in/text-out: they render the prompt, make one call
    and return the reply untouched. Retries and schema parsing live in the
    caller.
    """

    name = "base"

    def __init__(
        self,
        cfg: ProviderConfig,
        enrich_cfg: EnrichConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None,
        client: httpx.AsyncClient | None = None,
    ):
        self.cfg = cfg
        self.enrich_cfg = enrich_cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=cfg.timeout_seconds, trust_env=cfg.trust_env)

    @abstractmethod
    async def ask(self, text: str) -> str:
        """Return the raw reply for one article."""
        raise NotImplementedError

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _log_llm_response(self, status: str, content: str, prompt: str, **fields: Any) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload: dict[str, Any] = {
            "event": "llm_response",
            "status": status,
            "provider": self.name,
            "model": self.cfg.model,
            **fields,
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        payload["raw_response"] = truncate_text(redact_text(content, redaction))
        log_event(self.llm_logger, "LLM response", **payload)
