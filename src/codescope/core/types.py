"""Core data types that flow through the orchestrator.

Requests, capability outcomes and composite results are immutable values.
``UsageReport`` is the one deliberate exception: it is an accumulator that is
only ever mutated through ``CostAggregator.merge`` so that its total-cost
invariant holds no matter which order the parallel calls complete in.
"""

from __future__ import annotations

import dataclasses
import enum
import hashlib
import math
from types import MappingProxyType
import typing

if typing.TYPE_CHECKING:
    from codescope.core.models import (
        GeneratedDocumentation,
        GeneratedTest,
        PerformanceInsight,
        RefactoringSuggestion,
        SecurityFinding,
        StructuredExplanation,
    )

# --- Minimal guard helpers ---

T = typing.TypeVar("T")


def _freeze_mapping(
    m: dict[typing.Any, T] | typing.Mapping[typing.Any, T] | None,
) -> typing.Mapping[typing.Any, T]:
    """Return an immutable mapping view (empty when ``m`` is None)."""
    if isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m or {}))


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Enumerations ---


class Capability(str, enum.Enum):
    """One independently invokable analysis facet."""

    EXPLAIN = "explain"
    DIAGRAM = "diagram"
    SECURITY_SCAN = "security_scan"
    DOCUMENTATION = "documentation"
    TESTS = "tests"
    PERFORMANCE = "performance"
    REFACTORING = "refactoring"

    @property
    def is_primary(self) -> bool:
        """The core explanation is the only facet whose failure fails a request."""
        return self is Capability.EXPLAIN

    @property
    def is_auxiliary_service(self) -> bool:
        """Facets served by flat-fee analysis services rather than AI models."""
        return self in (Capability.PERFORMANCE, Capability.REFACTORING)

    @property
    def operation(self) -> str:
        """Rate-limit operation name for this capability."""
        return _OPERATION_NAMES[self]


_OPERATION_NAMES: dict[Capability, str] = {
    Capability.EXPLAIN: "explain",
    Capability.DIAGRAM: "generate-diagram",
    Capability.SECURITY_SCAN: "security-scan",
    Capability.DOCUMENTATION: "generate-documentation",
    Capability.TESTS: "generate-tests",
    Capability.PERFORMANCE: "profile-performance",
    Capability.REFACTORING: "suggest-refactoring",
}


class ErrorKind(str, enum.Enum):
    """Error taxonomy shared by providers, the client and the orchestrator."""

    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    MALFORMED = "malformed"
    TIMEOUT = "timeout"
    CONFIGURATION = "configuration"

    @property
    def retryable(self) -> bool:
        """Whether a caller may reasonably try the same request again later."""
        return self in (ErrorKind.RATE_LIMITED, ErrorKind.SERVER, ErrorKind.TIMEOUT)


class RequestState(str, enum.Enum):
    """Lifecycle of one orchestrated request."""

    RECEIVED = "received"
    CACHE_CHECK = "cache_check"
    CACHE_HIT = "cache_hit"
    RATE_LIMIT_CHECK = "rate_limit_check"
    REJECTED = "rejected"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    AGGREGATING = "aggregating"
    DONE = "done"


# --- Request ---


@dataclasses.dataclass(frozen=True, slots=True)
class AnalysisRequest:
    """One logical analysis request.

    Identity for caching is ``fingerprint()``, derived from the source text,
    the instruction and the provider. The language does not participate
    because it is either declared by the caller or detected from the text.
    """

    text: str
    language: str | None = None
    instruction: str = ""
    provider: str | None = None

    def __post_init__(self) -> None:
        """Validate field types."""
        _require(
            condition=isinstance(self.text, str),
            message="must be str",
            field_name="text",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.instruction, str),
            message="must be str",
            field_name="instruction",
            exc=TypeError,
        )
        _require(
            condition=self.provider is None or isinstance(self.provider, str),
            message="must be str | None",
            field_name="provider",
            exc=TypeError,
        )

    def fingerprint(self) -> str:
        """Return a deterministic cache key for this request.

        Fields are length-prefixed so that ``("ab", "c")`` and ``("a", "bc")``
        never collide.
        """
        digest = hashlib.sha256()
        for part in (self.text, self.instruction, self.provider or ""):
            encoded = part.encode("utf-8")
            digest.update(len(encoded).to_bytes(8, "big"))
            digest.update(encoded)
        return digest.hexdigest()


# --- Usage accounting ---


@dataclasses.dataclass(frozen=True, slots=True)
class ProviderUsage:
    """Token count and monetary cost attributed to one provider."""

    tokens: int = 0
    cost: float = 0.0

    def __post_init__(self) -> None:
        """Validate non-negative accounting values."""
        _require(
            condition=isinstance(self.tokens, int) and self.tokens >= 0,
            message="must be an int >= 0",
            field_name="tokens",
        )
        _require(
            condition=self.cost >= 0,
            message="must be >= 0",
            field_name="cost",
        )

    def __add__(self, other: ProviderUsage) -> ProviderUsage:
        return ProviderUsage(self.tokens + other.tokens, self.cost + other.cost)


@dataclasses.dataclass(slots=True)
class UsageReport:
    """Aggregate usage: per-provider metered usage plus auxiliary flat fees.

    ``total_cost`` always equals the sum of provider costs and auxiliary
    costs. Build reports with the ``for_provider``/``for_auxiliary``
    constructors and combine them with ``CostAggregator.merge``.
    """

    total_tokens: int = 0
    total_cost: float = 0.0
    providers: dict[str, ProviderUsage] = dataclasses.field(default_factory=dict)
    auxiliary: dict[str, float] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        """Reject hand-built reports whose total does not match the parts."""
        _require(
            condition=self.total_tokens >= 0,
            message="must be >= 0",
            field_name="total_tokens",
        )
        _require(
            condition=math.isclose(
                self.total_cost, self.component_cost(), rel_tol=1e-9, abs_tol=1e-12
            ),
            message=(
                f"{self.total_cost!r} does not equal provider + auxiliary costs "
                f"{self.component_cost()!r}"
            ),
            field_name="total_cost",
        )

    @classmethod
    def for_provider(cls, provider: str, tokens: int, cost: float) -> UsageReport:
        """Usage report for a single metered provider call."""
        return cls(
            total_tokens=tokens,
            total_cost=cost,
            providers={provider: ProviderUsage(tokens, cost)},
        )

    @classmethod
    def for_auxiliary(cls, service: str, cost: float) -> UsageReport:
        """Usage report for a flat-fee auxiliary service."""
        _require(condition=cost >= 0, message="must be >= 0", field_name="cost")
        return cls(total_cost=cost, auxiliary={service: cost})

    def component_cost(self) -> float:
        """Sum of all per-provider and auxiliary costs."""
        return sum(u.cost for u in self.providers.values()) + sum(
            self.auxiliary.values()
        )

    def copy(self) -> UsageReport:
        """Return an independent snapshot of this report."""
        return UsageReport(
            total_tokens=self.total_tokens,
            total_cost=self.total_cost,
            providers=dict(self.providers),
            auxiliary=dict(self.auxiliary),
        )

    def to_dict(self) -> dict[str, typing.Any]:
        """Plain-dict form suitable for JSON and telemetry payloads."""
        return {
            "total_tokens": self.total_tokens,
            "total_cost": self.total_cost,
            "providers": {
                name: {"tokens": u.tokens, "cost": u.cost}
                for name, u in self.providers.items()
            },
            "auxiliary": dict(self.auxiliary),
        }


# --- Capability outcomes ---


@dataclasses.dataclass(frozen=True, slots=True)
class Success:
    """A capability call that produced a payload."""

    payload: typing.Any
    usage: UsageReport | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class Failure:
    """A capability call that failed with a classified error."""

    kind: ErrorKind
    message: str
    retry_after: float | None = None

    def __post_init__(self) -> None:
        """Validate the error kind."""
        _require(
            condition=isinstance(self.kind, ErrorKind),
            message="must be an ErrorKind",
            field_name="kind",
            exc=TypeError,
        )


CapabilityResult = Success | Failure


# --- Orchestrator output ---


@dataclasses.dataclass(frozen=True, slots=True)
class OrchestrationError:
    """Top-level error attached to a ``CompositeResult``."""

    kind: ErrorKind
    message: str
    before_dispatch: bool = False

    @property
    def retryable(self) -> bool:
        """Transient conditions are distinguishable from permanent failures."""
        return self.kind.retryable


@dataclasses.dataclass(frozen=True, slots=True)
class CompositeResult:
    """The orchestrator's answer to one request.

    Constructed once, never mutated; the caller owns it. Absent facets are
    empty (``""``, ``()`` or ``None``) and listed in ``facet_errors`` when they
    were attempted and failed.
    """

    usage: UsageReport
    explanation: StructuredExplanation | None = None
    diagram: str = ""
    security_findings: tuple[SecurityFinding, ...] = ()
    documentation: GeneratedDocumentation | None = None
    tests: tuple[GeneratedTest, ...] = ()
    performance: tuple[PerformanceInsight, ...] = ()
    refactoring: tuple[RefactoringSuggestion, ...] = ()
    detected_language: str = "unknown"
    error: OrchestrationError | None = None
    facet_errors: typing.Mapping[Capability, ErrorKind] = dataclasses.field(
        default_factory=lambda: MappingProxyType({})
    )
    from_cache: bool = False

    def __post_init__(self) -> None:
        """Freeze the facet error mapping."""
        object.__setattr__(self, "facet_errors", _freeze_mapping(self.facet_errors))

    @property
    def ok(self) -> bool:
        """True when the primary explanation succeeded."""
        return self.error is None

    @property
    def rejected_before_dispatch(self) -> bool:
        """True when a pre-check short-circuited before any provider call."""
        return self.error is not None and self.error.before_dispatch

    @classmethod
    def rejected(
        cls, kind: ErrorKind, message: str, *, detected_language: str = "unknown"
    ) -> CompositeResult:
        """Result for a request refused before any provider was contacted."""
        return cls(
            usage=UsageReport(),
            detected_language=detected_language,
            error=OrchestrationError(kind=kind, message=message, before_dispatch=True),
        )


# --- Shared-state records ---


@dataclasses.dataclass(frozen=True, slots=True)
class CacheEntry:
    """A cached composite result and the monotonic time it was inserted."""

    fingerprint: str
    result: CompositeResult
    inserted_at: float


@dataclasses.dataclass(slots=True)
class RateLimitState:
    """Fixed-window counter for one named operation."""

    limit: int
    window_seconds: float
    window_start: float
    count: int = 0
