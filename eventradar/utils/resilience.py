"""
eventradar.utils.resilience

Retry policy applied where results leave the core (session store writes and
deletes).
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    backoff_mode: str = "exp"  # exp | fixed | none
    base_delay_s: float = 0.2
    max_delay_s: float = 2.0
    jitter: float = 0.25

    @classmethod
    def from_dict(cls, data: dict | None) -> "RetryPolicy":
        data = data or {}
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def compute_backoff_s(self, attempt: int) -> float:
        """
        attempt: 1..N
        """
        if self.backoff_mode == "none":
            return 0.0
        if self.backoff_mode == "fixed":
            delay = self.base_delay_s
        else:
            # exponential
            delay = self.base_delay_s * (2 ** max(0, attempt - 1))

        delay = min(delay, self.max_delay_s)
        if self.jitter > 0:
            delay = delay * (1.0 + (random.random() * 2 - 1) * self.jitter)  # +- jitter
        return max(0.0, delay)

    async def run(
        self,
        func: Callable[[], Awaitable[T]],
        *,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        description: str = "operation",
    ) -> T:
        """
        Await ``func()`` up to ``max_retries + 1`` times.

        The last error is re-raised once attempts run out.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await func()
            except retry_on as e:
                if attempt > self.max_retries:
                    logger.error(f"{description} failed after {attempt} attempts: {e}")
                    raise
                delay = self.compute_backoff_s(attempt)
                logger.warning(
                    f"{description} failed (attempt {attempt}), retrying in {delay:.2f}s: {e}"
                )
                await asyncio.sleep(delay)
