"""OpenAI-compatible chat completions provider (OpenAI, vLLM, Ollama, llama.cpp)."""

from __future__ import annotations

from typing import Any

import httpx

from ..prompts import build_enrichment_prompt, system_prompt
from ..tracing import record_span_error, set_span_output, start_span
from .base import EnrichmentProvider


class OpenAICompatibleProvider(EnrichmentProvider):
    """`/chat/completions` backend; the API key is optional for local servers."""

    name = "openai_compatible"

    async def ask(self, text: str) -> str:
        prompt = build_enrichment_prompt(text, self.enrich_cfg)
        payload = {
            "model": self.cfg.model,
            "messages": [
                {"role": "system", "content": system_prompt()},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.cfg.temperature,
            "max_tokens": self.cfg.max_output_tokens,
            "response_format": {"type": "json_object"},
        }
        with start_span(
            "openai_compatible.enrich",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": self.cfg.model, "llm.provider": "openai_compatible"},
        ) as span:
            try:
                data = await self._post(payload)
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_llm_response("provider_error", str(exc), prompt)
                raise
            content, finish_reason = _extract_message(data)
            set_span_output(span, content)
            self._log_llm_response("ok", content, prompt, finish_reason=finish_reason)
        if not content:
            raise ValueError("Chat completion contained no message content")
        return content

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        resp = await self.client.post(
            f"{self.cfg.base_url.rstrip('/')}/chat/completions",
            headers=headers,
            json=payload,
            timeout=self.cfg.timeout_seconds,
        )
        resp.raise_for_status()
        return resp.json()


def _extract_message(data: dict[str, Any]) -> tuple[str, str | None]:
    try:
        choice = data["choices"][0]
    except (KeyError, IndexError, TypeError):
        return "", None
    message = choice.get("message") or {}
    return message.get("content") or "", choice.get("finish_reason")
