"""Tests for hot-swappable enrichment provider factory."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from text_news.config import EnrichConfig, LoggingConfig, ProviderConfig
from text_news.llm.providers.factory import available_providers, create_provider
from text_news.llm.providers.gemini import GeminiProvider, _extract_text
from text_news.llm.providers.openai_compatible import OpenAICompatibleProvider


def test_available_providers_contains_expected_backends():
    names = available_providers()
    assert "gemini" in names
    assert "openai" in names
    assert "openai_compatible" in names


def test_create_provider_gemini():
    provider = create_provider(
        ProviderConfig(name="gemini", api_key="test-key"),
        EnrichConfig(),
        LoggingConfig(),
        llm_logger=None,
        client=httpx.AsyncClient(),
    )
    assert isinstance(provider, GeminiProvider)


def test_create_provider_gemini_requires_key(monkeypatch):
    monkeypatch.delenv("TEXT_NEWS_MISSING_KEY", raising=False)
    with pytest.raises(ValueError, match="Missing Google API key"):
        create_provider(
            ProviderConfig(name="gemini", api_key_env="TEXT_NEWS_MISSING_KEY"),
            EnrichConfig(),
            LoggingConfig(),
            llm_logger=None,
        )


def test_create_provider_openai_compatible_without_key(monkeypatch):
    monkeypatch.delenv("TEXT_NEWS_MISSING_KEY", raising=False)
    provider = create_provider(
        ProviderConfig(
            name="openai",
            model="gpt-4.1-mini",
            api_key_env="TEXT_NEWS_MISSING_KEY",
            base_url="http://localhost:8000/v1",
        ),
        EnrichConfig(),
        LoggingConfig(),
        llm_logger=None,
        client=httpx.AsyncClient(),
    )
    assert isinstance(provider, OpenAICompatibleProvider)


def test_create_provider_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported provider"):
        create_provider(
            ProviderConfig(name="unknown-provider", api_key="test-key"),
            EnrichConfig(),
            LoggingConfig(),
            llm_logger=None,
        )


def test_extract_text_joins_non_thought_parts():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "internal reasoning"},
                        {"text": '{"title": "A"'},
                        {"text": ', "category": "B"}'},
                    ]
                }
            }
        ]
    }

    assert _extract_text(data) == '{"title": "A", "category": "B"}'


def test_extract_text_falls_back_to_all_text_when_only_thought():
    data = {"candidates": [{"content": {"parts": [{"thought": True, "text": "first"}, {"thought": True, "text": " second"}]}}]}

    assert _extract_text(data) == "first second"


def test_gemini_ask_sends_article_and_returns_reply():
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": '{"ok": true}'}]}}]})

    async def _go() -> str:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = GeminiProvider(ProviderConfig(api_key="k"), EnrichConfig(), "k", LoggingConfig(), None, client=client)
        try:
            return await provider.ask("Title: Storm\n\nBody")
        finally:
            await client.aclose()

    reply = asyncio.run(_go())

    assert reply == '{"ok": true}'
    assert ":generateContent" in captured["url"]
    prompt = captured["body"]["contents"][0]["parts"][0]["text"]
    assert "Title: Storm" in prompt
    assert captured["body"]["generationConfig"]["responseMimeType"] == "application/json"


def test_openai_compatible_ask_raises_on_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "rate limited"})

    async def _go() -> str:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = OpenAICompatibleProvider(
            ProviderConfig(name="openai", base_url="http://llm.local/v1"),
            EnrichConfig(),
            None,
            LoggingConfig(),
            None,
            client=client,
        )
        try:
            return await provider.ask("text")
        finally:
            await client.aclose()

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(_go())
