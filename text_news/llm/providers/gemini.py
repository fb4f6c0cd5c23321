"""Google Gemini provider for article enrichment."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import EnrichConfig, LoggingConfig, ProviderConfig
from ..prompts import build_enrichment_prompt, system_prompt
from ..tracing import record_span_error, set_span_output, start_span
from .base import EnrichmentProvider


class GeminiProvider(EnrichmentProvider):
    """Gemini `generateContent` backend returning JSON-typed replies."""

    name = "gemini"

    def __init__(
        self,
        cfg: ProviderConfig,
        enrich_cfg: EnrichConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None,
        client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ValueError("Missing Google API key")
        super().__init__(cfg, enrich_cfg, api_key, log_cfg, llm_logger, client=client)

    async def ask(self, text: str) -> str:
        prompt = build_enrichment_prompt(text, self.enrich_cfg)
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt()}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.cfg.temperature,
                "maxOutputTokens": self.cfg.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }
        with start_span(
            "gemini.enrich",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": self.cfg.model, "llm.provider": "gemini"},
        ) as span:
            try:
                data = await self._post(payload)
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_llm_response("provider_error", str(exc), prompt)
                raise
            content = _extract_text(data)
            set_span_output(span, content)
            self._log_llm_response("ok", content, prompt, finish_reason=_finish_reason(data))
        if not content:
            raise ValueError("Gemini reply contained no text")
        return content

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/v1beta/models/{self.cfg.model}:generateContent"
        resp = await self.client.post(
            url,
            params={"key": self.api_key},
            json=payload,
            timeout=self.cfg.timeout_seconds,
        )
        resp.raise_for_status()
        return resp.json()


def _extract_text(data: dict[str, Any]) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(parts, list):
        return ""

    # Thought parts carry reasoning, not the JSON reply.
    answer: list[str] = []
    everything: list[str] = []
    for part in parts:
        if not isinstance(part, dict) or not part.get("text"):
            continue
        chunk = str(part["text"])
        everything.append(chunk)
        if not part.get("thought"):
            answer.append(chunk)
    return "".join(answer or everything)


def _finish_reason(data: dict[str, Any]) -> str | None:
    try:
        return data["candidates"][0].get("finishReason")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
