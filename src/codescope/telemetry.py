"""Telemetry context and reporter interfaces.

``TelemetryContext()`` with no reporters returns a shared no-op context, so
instrumented code pays almost nothing when nobody is listening. With
reporters attached it records:

- timings for ``with telemetry("scope"):`` blocks, named by their dotted
  path through the enclosing scopes;
- metrics and counters recorded inside those scopes;
- named events (``cache_hit``, ``capability_failed``, ...) with a payload.

Reporters are called inline and must not block. An exception raised by a
reporter is logged and dropped; it never reaches the request path.
"""

from collections import Counter, deque
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os
import time
from types import TracebackType
from typing import Any, Protocol, Self, runtime_checkable

log = logging.getLogger(__name__)

# Enclosing scope names; a ContextVar so concurrent tasks keep separate stacks.
_scope_stack_var: ContextVar[tuple[str, ...]] = ContextVar("scope_stack", default=())

# Evaluated once at import time
_TELEMETRY_DISABLED = os.getenv("CODESCOPE_TELEMETRY") == "0"

# --- Event names emitted by the orchestration core ---
EVENT_CACHE_HIT = "cache_hit"
EVENT_CACHE_EVICTED = "cache_evicted"
EVENT_RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
EVENT_CAPABILITY_FAILED = "capability_failed"
EVENT_REQUEST_COMPLETED = "request_completed"


@runtime_checkable
class TelemetryReporter(Protocol):
    """Sink for timings, metrics and events."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102
    def record_event(self, name: str, payload: dict[str, Any]) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _NoOpTelemetryContext:
    """Stateless stand-in used when no reporter is attached."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        return None

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        pass

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass

    def event(self, name: str, **payload: Any) -> None:
        pass


class _EnabledTelemetryContext:
    """Context that forwards everything to its reporters."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    def __call__(
        self, name: str, **metadata: Any
    ) -> AbstractContextManager["_EnabledTelemetryContext"]:
        if not name or not isinstance(name, str):
            raise ValueError("Scope name must be a non-empty string")
        return self._scope(name, metadata)

    @contextmanager
    def _scope(
        self, name: str, metadata: dict[str, Any]
    ) -> Iterator["_EnabledTelemetryContext"]:
        parents = _scope_stack_var.get()
        token = _scope_stack_var.set((*parents, name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            _scope_stack_var.reset(token)
            self._fan_out(
                "record_timing",
                _dotted(parents, name),
                elapsed,
                depth=len(parents),
                parent_scope=_dotted(parents) or None,
                **metadata,
            )

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        """Record ``value`` under ``name`` inside the current scope."""
        parents = _scope_stack_var.get()
        self._fan_out(
            "record_metric",
            _dotted(parents, name),
            value,
            parent_scope=_dotted(parents) or None,
            **metadata,
        )

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        self.metric(name, increment, metric_type="counter", **metadata)

    def event(self, name: str, **payload: Any) -> None:
        """Emit a named event; reporters receive the payload plus a timestamp."""
        self._fan_out("record_event", name, {"timestamp": time.time(), **payload})

    def _fan_out(self, method: str, *args: Any, **kwargs: Any) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(*args, **kwargs)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed in %s: %s",
                    type(reporter).__name__,
                    method,
                    e,
                    exc_info=True,
                )


def _dotted(parents: tuple[str, ...], *names: str) -> str:
    return ".".join((*parents, *names))


_NO_OP_SINGLETON = _NoOpTelemetryContext()

type TelemetryContextProtocol = _EnabledTelemetryContext | _NoOpTelemetryContext


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return an enabled context, or the shared no-op one.

    The no-op context is returned when there are no reporters or when
    ``CODESCOPE_TELEMETRY=0`` was set at import time.
    """
    if reporters and not _TELEMETRY_DISABLED:
        return _EnabledTelemetryContext(*reporters)
    return _NO_OP_SINGLETON


class LoggingReporter:
    """Forwards events to ``logging``; timings and metrics go to DEBUG."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO):
        self._logger = logger or logging.getLogger("codescope.events")
        self._level = level

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self._logger.debug("timing %s %.4fs", scope, duration)

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self._logger.debug("metric %s=%s", scope, value)

    def record_event(self, name: str, payload: dict[str, Any]) -> None:
        self._logger.log(self._level, "event %s %s", name, payload)


class InMemoryReporter:
    """Keeps a bounded history of everything it receives.

    Meant for development and tests: inspect ``timings``, ``metrics`` and
    ``events`` directly, or render them with ``get_report()``.
    """

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}
        self.events: deque[tuple[str, dict[str, Any]]] = deque(
            maxlen=max_entries_per_scope
        )

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self._history(self.timings, scope).append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self._history(self.metrics, scope).append((value, metadata))

    def record_event(self, name: str, payload: dict[str, Any]) -> None:
        self.events.append((name, payload))

    def events_named(self, name: str) -> list[dict[str, Any]]:
        """Payloads of every recorded event called ``name``, oldest first."""
        return [payload for event, payload in self.events if event == name]

    def get_report(self) -> str:
        """Render timings as an indented scope outline, then metrics and events."""
        lines = ["=== Telemetry Report ==="]

        if self.timings:
            lines.append("\n--- Timings ---")
            for scope in sorted(self.timings):
                durations = [d for d, _ in self.timings[scope]]
                depth = scope.count(".")
                label = "  " * depth + scope.rsplit(".", 1)[-1]
                lines.append(
                    f"{label:<40} | Calls: {len(durations):<4} | "
                    f"Avg: {sum(durations) / len(durations):.4f}s | "
                    f"Total: {sum(durations):.4f}s"
                )

        if self.metrics:
            lines.append("\n--- Metrics ---")
            for scope, values in sorted(self.metrics.items()):
                total = sum(v for v, _ in values if isinstance(v, int | float))
                lines.append(f"{scope:<40} | Count: {len(values):<4} | Total: {total:,.0f}")

        if self.events:
            lines.append("\n--- Events ---")
            for name, n in sorted(Counter(name for name, _ in self.events).items()):
                lines.append(f"{name:<40} | Count: {n}")

        return "\n".join(lines)

    def _history(self, store: dict[str, deque], scope: str) -> deque:
        if scope not in store:
            store[scope] = deque(maxlen=self.max_entries)
        return store[scope]
