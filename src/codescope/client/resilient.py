"""Bounded retry/backoff around one outbound capability call.

This is the only place network calls are retried. Rate-limited failures back
off by the server-suggested delay (or ``(attempt + 1)`` seconds); server
failures back off linearly by ``(attempt + 1) * 2`` seconds. Every other
failure kind is returned to the caller on first sight.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging

from codescope.constants import (
    MAX_RETRIES,
    RATE_LIMIT_BACKOFF_STEP,
    SERVER_ERROR_BACKOFF_STEP,
)
from codescope.core.exceptions import ProviderError
from codescope.core.types import CapabilityResult, ErrorKind, Failure, Success
from codescope.telemetry import TelemetryContext, TelemetryContextProtocol

logger = logging.getLogger(__name__)

T_CLIENT_RETRY = "client.retry"

CallFactory = Callable[[], Awaitable[CapabilityResult]]


class ResilientClient:
    """Executes capability calls with at most ``max_retries`` retries."""

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        telemetry: TelemetryContextProtocol | None = None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self._sleep = sleep
        self._telemetry = telemetry or TelemetryContext()

    async def execute(self, call: CallFactory, *, label: str = "call") -> CapabilityResult:
        """Run ``call`` until it succeeds, fails permanently or retries run out.

        ``call`` is a zero-argument factory so every attempt gets a fresh
        coroutine. ``ProviderError`` raised by the call is treated like the
        equivalent returned ``Failure``.
        """
        attempt = 0
        while True:
            result = await self._attempt(call)
            if isinstance(result, Success):
                return result

            delay = self._backoff_for(result, attempt)
            if delay is None or attempt >= self.max_retries:
                if delay is not None:
                    logger.warning(
                        "%s failed after %d attempts: %s (%s)",
                        label,
                        attempt + 1,
                        result.kind.value,
                        result.message,
                    )
                return result

            logger.warning(
                "%s attempt %d/%d failed with %s; retrying in %.2fs",
                label,
                attempt + 1,
                self.max_retries + 1,
                result.kind.value,
                delay,
            )
            self._telemetry.count(
                T_CLIENT_RETRY, label=label, kind=result.kind.value, attempt=attempt + 1
            )
            await self._sleep(delay)
            attempt += 1

    async def _attempt(self, call: CallFactory) -> CapabilityResult:
        try:
            return await call()
        except ProviderError as e:
            return e.to_failure()

    @staticmethod
    def _backoff_for(failure: Failure, attempt: int) -> float | None:
        """Delay before the next attempt, or None when the failure is final."""
        if failure.kind is ErrorKind.RATE_LIMITED:
            if failure.retry_after is not None and failure.retry_after >= 0:
                return failure.retry_after
            return (attempt + 1) * RATE_LIMIT_BACKOFF_STEP
        if failure.kind is ErrorKind.SERVER:
            return (attempt + 1) * SERVER_ERROR_BACKOFF_STEP
        return None
