"""Tests for Langfuse tracing setup behavior."""

from __future__ import annotations

import sys
import types

from text_news.config import LangfuseConfig
from text_news.llm import tracing


def test_setup_langfuse_passes_credentials_from_env(monkeypatch):
    captured: dict = {}

    class DummyLangfuse:
        def __init__(self, **kwargs):
            captured.update(kwargs)

    fake_module = types.SimpleNamespace(Langfuse=DummyLangfuse)
    monkeypatch.setitem(sys.modules, "langfuse", fake_module)
    monkeypatch.setenv("LANGFUSE_PUBLIC_KEY", "pk-test")
    monkeypatch.setenv("LANGFUSE_SECRET_KEY", "sk-test")
    monkeypatch.setenv("LANGFUSE_HOST", "https://us.cloud.langfuse.com")

    tracing.setup_langfuse(LangfuseConfig(enabled=True, release="r1"))

    assert captured["public_key"] == "pk-test"
    assert captured["secret_key"] == "sk-test"
    assert captured["host"] == "https://us.cloud.langfuse.com"
    assert captured["release"] == "r1"
    assert isinstance(tracing.get_tracer(), DummyLangfuse)
    tracing.setup_langfuse(LangfuseConfig())


def test_setup_langfuse_disables_tracer_when_keys_missing(monkeypatch):
    monkeypatch.delenv("LANGFUSE_PUBLIC_KEY", raising=False)
    monkeypatch.delenv("LANGFUSE_SECRET_KEY", raising=False)

    tracing.setup_langfuse(LangfuseConfig(enabled=True))

    assert tracing.get_tracer() is None


def test_start_span_is_noop_without_tracer():
    tracing.setup_langfuse(LangfuseConfig())

    with tracing.start_span("ingest.index", kind="chain") as span:
        tracing.set_span_output(span, {"candidates": 3})
        tracing.record_span_error(span, RuntimeError("x"))

    assert span is None


def test_start_span_records_output_with_redaction(monkeypatch):
    updates: list[dict] = []

    class DummySpan:
        def update(self, **kwargs):
            updates.append(kwargs)

    class DummyContext:
        def __enter__(self):
            return DummySpan()

        def __exit__(self, *exc):
            return False

    class DummyLangfuse:
        def __init__(self, **kwargs):
            pass

        def start_as_current_span(self, **kwargs):
            updates.append({"started": kwargs["name"], "metadata": kwargs["metadata"]})
            return DummyContext()

    monkeypatch.setitem(sys.modules, "langfuse", types.SimpleNamespace(Langfuse=DummyLangfuse))
    tracing.setup_langfuse(LangfuseConfig(enabled=True, public_key="pk", secret_key="sk"))
    try:
        with tracing.start_span("gemini.enrich", kind="llm", attributes={"llm.model": "m", "skip": None}) as span:
            tracing.set_span_output(span, "see https://news.example/story/a")
    finally:
        tracing.setup_langfuse(LangfuseConfig())

    assert updates[0] == {"started": "gemini.enrich", "metadata": {"llm.model": "m", "span.kind": "llm"}}
    assert updates[1] == {"output": "see [REDACTED_URL]"}
