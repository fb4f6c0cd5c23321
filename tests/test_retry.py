"""Tests for the exponential-backoff enrichment wrapper."""

from __future__ import annotations

import asyncio

import pytest

from text_news.llm.retry import JITTER_SECONDS, RetryAsk, backoff_delay


class _FlakyAsker:
    def __init__(self, failures: int, reply: str = "ok"):
        self.failures = failures
        self.reply = reply
        self.calls = 0

    async def ask(self, text: str) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"boom {self.calls}")
        return self.reply


class _SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def test_backoff_delay_doubles_and_caps():
    no_jitter = lambda lo, hi: 0.0  # noqa: E731

    assert [backoff_delay(n, 1.0, 30.0, no_jitter) for n in range(1, 8)] == [1, 2, 4, 8, 16, 30, 30]


def test_backoff_delay_jitter_stays_within_bound():
    for attempt in range(1, 10):
        delay = backoff_delay(attempt, 0.5, 4.0)
        floor = min(0.5 * 2 ** (attempt - 1), 4.0)
        assert floor <= delay <= floor + JITTER_SECONDS


def test_retry_returns_after_transient_failures():
    inner = _FlakyAsker(failures=2)
    sleep = _SleepRecorder()
    asker = RetryAsk(inner, max_retries=5, base_delay=1.0, max_delay=30.0, sleep=sleep, jitter=lambda lo, hi: 0.1)

    result = asyncio.run(asker.ask("text"))

    assert result == "ok"
    assert inner.calls == 3
    assert sleep.delays == pytest.approx([1.1, 2.1])


def test_retry_gives_up_after_max_retries():
    inner = _FlakyAsker(failures=100)
    sleep = _SleepRecorder()
    asker = RetryAsk(inner, max_retries=3, base_delay=1.0, max_delay=2.0, sleep=sleep, jitter=lambda lo, hi: 0.0)

    with pytest.raises(RuntimeError, match="boom 4"):
        asyncio.run(asker.ask("text"))

    assert inner.calls == 4
    assert sleep.delays == [1.0, 2.0, 2.0]


def test_retry_delays_respect_bounds_with_real_jitter():
    inner = _FlakyAsker(failures=4)
    sleep = _SleepRecorder()
    asker = RetryAsk(inner, max_retries=5, base_delay=0.5, max_delay=3.0, sleep=sleep)

    asyncio.run(asker.ask("text"))

    assert len(sleep.delays) == 4
    for attempt, delay in enumerate(sleep.delays, start=1):
        floor = min(0.5 * 2 ** (attempt - 1), 3.0)
        assert floor <= delay <= floor + JITTER_SECONDS


def test_retry_zero_retries_calls_once():
    inner = _FlakyAsker(failures=1)
    sleep = _SleepRecorder()
    asker = RetryAsk(inner, max_retries=0, sleep=sleep)

    with pytest.raises(RuntimeError):
        asyncio.run(asker.ask("text"))

    assert inner.calls == 1
    assert sleep.delays == []
