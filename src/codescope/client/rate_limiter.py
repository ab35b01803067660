"""Fixed-window rate limiting per named operation."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
import logging
import threading
import time

from codescope.core.types import RateLimitState
from codescope.telemetry import (
    EVENT_RATE_LIMIT_EXCEEDED,
    TelemetryContext,
    TelemetryContextProtocol,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimitRule:
    """Configured limit for one operation: ``limit`` calls per ``window_seconds``."""

    limit: int
    window_seconds: float

    def __post_init__(self) -> None:
        """Validate rule bounds."""
        if self.limit < 0:
            raise ValueError("limit: must be >= 0")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds: must be > 0")


class RateLimiter:
    """Admits or rejects calls per operation using fixed-window counters.

    ``check_and_increment`` performs the window reset, the admission check and
    the increment as one step under a single lock, so concurrent callers can
    never be admitted beyond ``limit`` in one window.
    """

    def __init__(
        self,
        limits: Mapping[str, RateLimitRule],
        *,
        clock: Callable[[], float] = time.monotonic,
        telemetry: TelemetryContextProtocol | None = None,
    ):
        self._clock = clock
        self._telemetry = telemetry or TelemetryContext()
        self._lock = threading.Lock()
        self._rules = dict(limits)
        self._states: dict[str, RateLimitState] = {}
        self._unknown_warned: set[str] = set()

    def check_and_increment(self, operation: str) -> bool:
        """Return True if ``operation`` is admitted, consuming one slot."""
        rule = self._rules.get(operation)
        if rule is None:
            self._warn_unknown(operation)
            return True

        with self._lock:
            now = self._clock()
            state = self._states.get(operation)
            if state is None:
                state = RateLimitState(
                    limit=rule.limit,
                    window_seconds=rule.window_seconds,
                    window_start=now,
                )
                self._states[operation] = state
            elif now - state.window_start > state.window_seconds:
                state.count = 0
                state.window_start = now

            admitted = state.count < state.limit
            if admitted:
                state.count += 1
            count, limit = state.count, state.limit

        if not admitted:
            logger.info(
                "Rate limit reached for '%s' (%d/%d in window)", operation, count, limit
            )
            self._telemetry.event(
                EVENT_RATE_LIMIT_EXCEEDED,
                operation=operation,
                limit=limit,
                window_seconds=rule.window_seconds,
            )
        return admitted

    def state(self, operation: str) -> RateLimitState | None:
        """Snapshot of the counter for ``operation`` (None if never used)."""
        with self._lock:
            state = self._states.get(operation)
            if state is None:
                return None
            return RateLimitState(
                limit=state.limit,
                window_seconds=state.window_seconds,
                window_start=state.window_start,
                count=state.count,
            )

    def reset(self) -> None:
        """Forget all counters."""
        with self._lock:
            self._states.clear()

    def _warn_unknown(self, operation: str) -> None:
        with self._lock:
            if operation in self._unknown_warned:
                return
            self._unknown_warned.add(operation)
        logger.warning(
            "No rate limit configured for operation '%s'; admitting by default",
            operation,
        )


def rules_from_mapping(
    raw: Mapping[str, Mapping[str, float] | tuple[int, float] | RateLimitRule],
) -> dict[str, RateLimitRule]:
    """Build rules from ``{op: {"limit": n, "window_seconds": s}}`` or tuples."""
    rules: dict[str, RateLimitRule] = {}
    for operation, value in raw.items():
        if isinstance(value, RateLimitRule):
            rules[operation] = value
        elif isinstance(value, tuple):
            limit, window = value
            rules[operation] = RateLimitRule(int(limit), float(window))
        else:
            rules[operation] = RateLimitRule(
                int(value["limit"]), float(value["window_seconds"])
            )
    return rules
