"""The primary user-facing entry point for analysis requests.

``RequestOrchestrator.execute`` takes one ``AnalysisRequest`` through a fixed
sequence of states:

    Received -> CacheCheck -> CacheHit -> Done
                           -> RateLimitCheck -> Rejected -> Done
                                             -> Dispatching -> Collecting
                                                -> Aggregating -> Done

Each enabled capability runs as its own asyncio task through the shared
``ResilientClient``. Only the primary explanation can fail the request; every
other facet degrades to an empty value plus a ``capability_failed`` event.
The caller always receives a ``CompositeResult``.

Shared structures (cache, rate limiter, provider registry, telemetry) are
created once, by ``create_orchestrator`` or the constructor, and live as long
as the orchestrator does.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
import dataclasses
import logging
import time
from types import TracebackType
from typing import Any, Self

from codescope.cache import CacheSweeper, ResponseCache, mark_cached
from codescope.client.rate_limiter import RateLimiter
from codescope.client.resilient import ResilientClient
from codescope.config import FrozenConfig, resolve_config
from codescope.constants import AUXILIARY_SERVICE_FEES
from codescope.core.exceptions import OrchestrationTimeoutError
from codescope.core.models import StructuredExplanation
from codescope.core.types import (
    AnalysisRequest,
    Capability,
    CapabilityResult,
    CompositeResult,
    ErrorKind,
    Failure,
    OrchestrationError,
    RequestState,
    Success,
    UsageReport,
)
from codescope.cost import CostAggregator
from codescope.credentials import CredentialStore
from codescope.language import resolve_language
from codescope.providers.base import (
    CapabilityCall,
    CapabilityProvider,
    capability_boundary,
    capability_method,
)
from codescope.providers.registry import ProviderRegistry, build_registry
from codescope.telemetry import (
    EVENT_CACHE_HIT,
    EVENT_CAPABILITY_FAILED,
    EVENT_REQUEST_COMPLETED,
    TelemetryContext,
    TelemetryContextProtocol,
    TelemetryReporter,
)

logger = logging.getLogger(__name__)

SECURITY_SCAN_FEE_KEY = "security_scan"

# Field on CompositeResult that carries each capability's payload.
_FACET_FIELDS: dict[Capability, str] = {
    Capability.EXPLAIN: "explanation",
    Capability.DIAGRAM: "diagram",
    Capability.SECURITY_SCAN: "security_findings",
    Capability.DOCUMENTATION: "documentation",
    Capability.TESTS: "tests",
    Capability.PERFORMANCE: "performance",
    Capability.REFACTORING: "refactoring",
}
_SEQUENCE_FACETS = frozenset(
    {
        Capability.SECURITY_SCAN,
        Capability.TESTS,
        Capability.PERFORMANCE,
        Capability.REFACTORING,
    }
)


class RequestOrchestrator:
    """Fans one analysis request out across providers and folds the results.

    Args:
        config: Frozen configuration (limits, deadline, feature toggles).
        registry: Providers by name plus the optional auxiliary provider.
        cache: Shared response cache; built from ``config`` when omitted.
        rate_limiter: Shared limiter; built from ``config.rate_limits`` when
            omitted.
        resilient_client: Retry wrapper; built with ``config.max_retries``
            when omitted.
        telemetry: Telemetry context for scopes and events.
        clock: Monotonic clock used for request durations.
    """

    def __init__(
        self,
        config: FrozenConfig,
        registry: ProviderRegistry,
        *,
        cache: ResponseCache | None = None,
        rate_limiter: RateLimiter | None = None,
        resilient_client: ResilientClient | None = None,
        telemetry: TelemetryContextProtocol | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.registry = registry
        self._telemetry = telemetry if telemetry is not None else TelemetryContext()
        self._clock = clock
        # An empty cache is falsy, so test for None rather than truthiness.
        self.cache = (
            cache
            if cache is not None
            else ResponseCache(
                config.cache_max_size,
                config.cache_ttl_seconds,
                telemetry=self._telemetry,
            )
        )
        self.rate_limiter = (
            rate_limiter
            if rate_limiter is not None
            else RateLimiter(config.rate_limits, telemetry=self._telemetry)
        )
        self.resilient_client = (
            resilient_client
            if resilient_client is not None
            else ResilientClient(config.max_retries, telemetry=self._telemetry)
        )
        self._sweeper = CacheSweeper(self.cache, config.cache_sweep_interval_seconds)

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the background cache sweep on the running event loop."""
        self._sweeper.start()

    async def aclose(self) -> None:
        """Stop the cache sweep and close provider transports."""
        await self._sweeper.stop()
        await self.registry.aclose()

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # --- Execution ---

    async def execute(
        self,
        request: AnalysisRequest,
        capabilities: Iterable[Capability] | None = None,
    ) -> CompositeResult:
        """Run ``request`` and return its composite result.

        Args:
            request: The analysis request.
            capabilities: Optional subset of the enabled capabilities to run.
                The primary explanation always runs.

        Returns:
            A ``CompositeResult``. Provider faults never raise; they surface as
            ``result.error`` (primary) or ``result.facet_errors`` (others).
        """
        started = self._clock()
        fingerprint = request.fingerprint()
        short = fingerprint[:12]
        language = resolve_language(request.language, request.text)
        self._transition(short, RequestState.RECEIVED)

        # Cache check
        self._transition(short, RequestState.CACHE_CHECK)
        with self._telemetry("orchestrator.cache_check"):
            cached, found = self.cache.get(fingerprint)
        if found and cached is not None:
            logger.info("Serving request %s from cache", short)
            self._telemetry.event(EVENT_CACHE_HIT, fingerprint=fingerprint)
            self._transition(short, RequestState.CACHE_HIT)
            self._transition(short, RequestState.DONE)
            return mark_cached(cached)

        # A request with no usable provider consumes no quota.
        provider = self._resolve_provider(request.provider)
        if provider is None:
            logger.error(
                "Default provider '%s' is not registered", self.config.default_provider
            )
            self._transition(short, RequestState.DONE)
            return CompositeResult.rejected(
                ErrorKind.CONFIGURATION,
                f"No provider registered under '{self.config.default_provider}'",
                detected_language=language,
            )

        # Primary rate limit
        self._transition(short, RequestState.RATE_LIMIT_CHECK)
        primary_op = Capability.EXPLAIN.operation
        if not self.rate_limiter.check_and_increment(primary_op):
            self._transition(short, RequestState.REJECTED)
            self._transition(short, RequestState.DONE)
            return CompositeResult.rejected(
                ErrorKind.RATE_LIMITED,
                f"Rate limit exceeded for '{primary_op}'; try again later",
                detected_language=language,
            )

        # Fan out
        self._transition(short, RequestState.DISPATCHING)
        with self._telemetry("orchestrator.dispatch", provider=provider.name):
            outcomes = await self._dispatch(
                request,
                language,
                provider,
                self._selected(capabilities),
                short,
                started,
            )

        # Fan in
        self._transition(short, RequestState.AGGREGATING)
        with self._telemetry("orchestrator.aggregate"):
            result = self._aggregate(outcomes, language, provider.name)

        if result.error is None:
            # The caller owns ``result``; the cache keeps its own copy.
            self.cache.put(
                fingerprint, dataclasses.replace(result, usage=result.usage.copy())
            )
        else:
            logger.error(
                "Request %s failed: %s (%s)",
                short,
                result.error.kind.value,
                result.error.message,
            )

        self._telemetry.event(
            EVENT_REQUEST_COMPLETED,
            fingerprint=fingerprint,
            provider=provider.name,
            duration_ms=(self._clock() - started) * 1000.0,
            facets=sorted(c.value for c in outcomes if c not in result.facet_errors),
            failed_facets=sorted(c.value for c in result.facet_errors),
            total_cost=result.usage.total_cost,
            ok=result.ok,
        )
        self._transition(short, RequestState.DONE)
        return result

    def _selected(self, requested: Iterable[Capability] | None) -> list[Capability]:
        enabled = self.config.enabled_capabilities()
        wanted = enabled if requested is None else enabled & frozenset(requested)
        return [c for c in Capability if c in wanted or c.is_primary]

    def _resolve_provider(self, name: str | None) -> CapabilityProvider | None:
        default = self.config.default_provider
        if name and name != default:
            provider = self.registry.get(name)
            if provider is not None:
                return provider
            logger.warning(
                "Unknown provider '%s'; falling back to default provider '%s'",
                name,
                default,
            )
        return self.registry.get(default)

    def _route(
        self, capability: Capability, provider: CapabilityProvider
    ) -> CapabilityProvider:
        if capability.is_auxiliary_service and self.registry.auxiliary is not None:
            return self.registry.auxiliary
        return provider

    async def _dispatch(
        self,
        request: AnalysisRequest,
        language: str,
        provider: CapabilityProvider,
        capabilities: list[Capability],
        short: str,
        started: float,
    ) -> dict[Capability, CapabilityResult]:
        """Launch one task per runnable capability and collect every outcome.

        Tasks get whatever is left of the request deadline, counted from
        ``started``.
        """
        outcomes: dict[Capability, CapabilityResult] = {}
        tasks: dict[asyncio.Task[CapabilityResult], Capability] = {}

        for capability in capabilities:
            target = self._route(capability, provider)
            method = capability_method(target, capability)
            if method is None:
                logger.debug(
                    "Skipping %s: not supported by '%s'", capability.value, target.name
                )
                continue
            # The primary operation was admitted before dispatch.
            if not capability.is_primary and not self.rate_limiter.check_and_increment(
                capability.operation
            ):
                outcomes[capability] = Failure(
                    ErrorKind.RATE_LIMITED,
                    f"Rate limit exceeded for '{capability.operation}'",
                )
                continue
            task = asyncio.create_task(
                self._call(method, capability, target.name, request, language),
                name=f"codescope-{capability.value}",
            )
            tasks[task] = capability

        if not tasks:
            return outcomes

        self._transition(short, RequestState.COLLECTING)
        elapsed = self._clock() - started
        remaining = max(0.0, self.config.request_deadline_seconds - elapsed)
        done, pending = await asyncio.wait(tasks, timeout=remaining)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)

        for task, capability in tasks.items():
            if task in done:
                try:
                    outcomes[capability] = task.result()
                except Exception as e:
                    logger.exception("Capability %s raised unexpectedly", capability.value)
                    outcomes[capability] = Failure(
                        ErrorKind.SERVER, f"Unexpected error: {e}"
                    )
            else:
                logger.warning(
                    "%s did not settle within %dms; cancelled",
                    capability.value,
                    self.config.request_deadline_ms,
                )
                outcomes[capability] = OrchestrationTimeoutError(
                    capability.value, self.config.request_deadline_ms
                ).to_failure()
        return outcomes

    async def _call(
        self,
        method: CapabilityCall,
        capability: Capability,
        provider_name: str,
        request: AnalysisRequest,
        language: str,
    ) -> CapabilityResult:
        return await self.resilient_client.execute(
            lambda: capability_boundary(
                method(request.text, language, request.instruction)
            ),
            label=f"{provider_name}.{capability.value}",
        )

    def _aggregate(
        self,
        outcomes: dict[Capability, CapabilityResult],
        language: str,
        provider_name: str,
    ) -> CompositeResult:
        facets: dict[str, Any] = {}
        facet_errors: dict[Capability, ErrorKind] = {}
        usage: list[UsageReport | None] = []
        error: OrchestrationError | None = None

        for capability in Capability:
            outcome = outcomes.get(capability)
            if outcome is None:
                continue
            if isinstance(outcome, Success):
                facets[_FACET_FIELDS[capability]] = _facet_value(
                    capability, outcome.payload
                )
                usage.append(outcome.usage)
                continue

            facet_errors[capability] = outcome.kind
            if capability.is_primary:
                error = OrchestrationError(kind=outcome.kind, message=outcome.message)
                if outcome.kind is ErrorKind.MALFORMED:
                    facets["explanation"] = StructuredExplanation.placeholder(
                        outcome.message
                    )
            else:
                logger.warning(
                    "Capability %s failed on '%s': %s (%s)",
                    capability.value,
                    provider_name,
                    outcome.kind.value,
                    outcome.message,
                )
                self._telemetry.event(
                    EVENT_CAPABILITY_FAILED,
                    capability=capability.value,
                    provider=provider_name,
                    kind=outcome.kind.value,
                    message=outcome.message,
                    retryable=outcome.kind.retryable,
                )

        if Capability.EXPLAIN not in outcomes:
            error = OrchestrationError(
                kind=ErrorKind.CONFIGURATION,
                message=f"Provider '{provider_name}' does not support explain",
            )

        if (
            self.config.enable_cost_estimation
            and isinstance(outcomes.get(Capability.SECURITY_SCAN), Success)
        ):
            usage.append(
                UsageReport.for_auxiliary(
                    SECURITY_SCAN_FEE_KEY, AUXILIARY_SERVICE_FEES[SECURITY_SCAN_FEE_KEY]
                )
            )

        return CompositeResult(
            usage=CostAggregator.combine(usage),
            detected_language=language,
            error=error,
            facet_errors=facet_errors,
            **facets,
        )

    def _transition(self, fingerprint: str, state: RequestState) -> None:
        logger.debug("Request %s -> %s", fingerprint, state.value)


def _facet_value(capability: Capability, payload: Any) -> Any:
    if capability is Capability.DIAGRAM:
        return str(payload or "")
    if capability in _SEQUENCE_FACETS:
        return tuple(payload or ())
    return payload


def create_orchestrator(
    config: FrozenConfig | None = None,
    *,
    registry: ProviderRegistry | None = None,
    credentials: CredentialStore | None = None,
    reporters: Iterable[TelemetryReporter] = (),
) -> RequestOrchestrator:
    """Create an orchestrator with optional configuration.

    If no configuration is provided it is resolved from the environment,
    project and home files. This is the only place where ambient
    configuration is resolved.

    Args:
        config: Optional frozen configuration.
        registry: Providers to use; built from ``config`` when omitted.
        credentials: Credential store for real providers (defaults to the
            environment).
        reporters: Telemetry reporters; none means no-op telemetry.

    Returns:
        A ``RequestOrchestrator``. Call ``start()`` (or use it as an async
        context manager) to run the background cache sweep.
    """
    final_config = config if config is not None else resolve_config().to_frozen()
    return RequestOrchestrator(
        final_config,
        registry or build_registry(final_config, credentials),
        telemetry=TelemetryContext(*reporters),
    )
