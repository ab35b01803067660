"""Core data types, payload models and exceptions."""

from codescope.core.exceptions import (
    AuthError,
    CodescopeError,
    ConfigFileError,
    ConfigurationError,
    MalformedResponseError,
    OrchestrationTimeoutError,
    ProviderError,
    RateLimitedError,
    ServerError,
)
from codescope.core.models import (
    GeneratedDocumentation,
    GeneratedTest,
    LineExplanation,
    PerformanceInsight,
    RefactoringSuggestion,
    SecurityFinding,
    Severity,
    StructuredExplanation,
)
from codescope.core.types import (
    AnalysisRequest,
    CacheEntry,
    Capability,
    CapabilityResult,
    CompositeResult,
    ErrorKind,
    Failure,
    OrchestrationError,
    ProviderUsage,
    RateLimitState,
    RequestState,
    Success,
    UsageReport,
)

__all__ = [  # noqa: RUF022
    "AnalysisRequest",
    "CacheEntry",
    "Capability",
    "CapabilityResult",
    "CompositeResult",
    "ErrorKind",
    "Failure",
    "OrchestrationError",
    "ProviderUsage",
    "RateLimitState",
    "RequestState",
    "Success",
    "UsageReport",
    # Payloads
    "GeneratedDocumentation",
    "GeneratedTest",
    "LineExplanation",
    "PerformanceInsight",
    "RefactoringSuggestion",
    "SecurityFinding",
    "Severity",
    "StructuredExplanation",
    # Exceptions
    "AuthError",
    "CodescopeError",
    "ConfigFileError",
    "ConfigurationError",
    "MalformedResponseError",
    "OrchestrationTimeoutError",
    "ProviderError",
    "RateLimitedError",
    "ServerError",
]
