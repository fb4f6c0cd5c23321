"""Exponential backoff with jitter around a single enrichment call."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Protocol

from ..utils.logging import log_event


JITTER_SECONDS = 0.25


class Asker(Protocol):
    async def ask(self, text: str) -> str: ...


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay before retry number `attempt` (1-based): capped exponential plus jitter."""
    return min(base_delay * 2 ** (attempt - 1), max_delay) + jitter(0.0, JITTER_SECONDS)


class RetryAsk:
    """Wraps an `Asker` so failed calls are retried with exponential backoff.

    The wrapped call is attempted once plus up to `max_retries` more times.
    The last error is raised when every attempt failed. Sleeping goes
    through `sleep` so sibling tasks keep running.
    """

    def __init__(
        self,
        inner: Asker,
        max_retries: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
        logger: logging.Logger | None = None,
    ):
        self.inner = inner
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep
        self._jitter = jitter
        self.logger = logger

    async def ask(self, text: str) -> str:
        attempt = 0
        while True:
            try:
                return await self.inner.ask(text)
            except Exception as exc:
                attempt += 1
                if attempt > self.max_retries:
                    log_event(
                        self.logger,
                        "Enrichment call failed, retries exhausted",
                        event="enrich_retries_exhausted",
                        attempts=attempt,
                        error=str(exc),
                    )
                    raise
                delay = backoff_delay(attempt, self.base_delay, self.max_delay, self._jitter)
                log_event(
                    self.logger,
                    "Enrichment call failed, backing off",
                    event="enrich_retry",
                    attempt=attempt,
                    delay_seconds=round(delay, 3),
                    error=str(exc),
                )
                await self._sleep(delay)
