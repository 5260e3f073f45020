from __future__ import annotations

import asyncio
from datetime import datetime
import logging
from typing import Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)


class DueTaskSender(Protocol):
    async def send_due_task_email(self, to: str, description: str, due_date: datetime | None) -> None: ...


def backoff_delay(attempt: int, base_delay_sec: float = 1.0) -> float:
    return base_delay_sec * (2 ** attempt)


class RetryingSender:
    """
    Bounded exponential-backoff wrapper around a due-task sender.

    Each failed attempt n (1-based) waits base_delay * 2**n before moving on,
    so the defaults give 2s, 4s, 8s. The wait only suspends the task being
    retried. Returns True on the first success, False once max_retries
    attempts have failed.
    """

    def __init__(
        self,
        sender: DueTaskSender,
        max_retries: int = 3,
        base_delay_sec: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.sender = sender
        self.max_retries = max(1, max_retries)
        self.base_delay_sec = max(0.0, base_delay_sec)
        self._sleep = sleep
        self.last_attempts = 0

    async def send(self, address: str, description: str, due_date: datetime | None) -> bool:
        attempt = 0
        self.last_attempts = 0
        while attempt < self.max_retries:
            try:
                self.last_attempts = attempt + 1
                await self.sender.send_due_task_email(address, description, due_date)
                return True
            except Exception as exc:
                attempt += 1
                delay = backoff_delay(attempt, self.base_delay_sec)
                logger.warning(
                    "Email send failed (attempt %s/%s) for %s: %s. Backing off %.1fs",
                    attempt,
                    self.max_retries,
                    address,
                    exc,
                    delay,
                )
                await self._sleep(delay)
        return False
