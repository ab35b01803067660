"""Resilient multi-provider orchestration for code analysis requests."""

import importlib.metadata
import logging

from codescope.cache import ResponseCache
from codescope.client import RateLimiter, RateLimitRule, ResilientClient
from codescope.config import FrozenConfig, ResolvedConfig, resolve_config
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
from codescope.core.types import (
    AnalysisRequest,
    Capability,
    CapabilityResult,
    CompositeResult,
    ErrorKind,
    Failure,
    OrchestrationError,
    ProviderUsage,
    RequestState,
    Success,
    UsageReport,
)
from codescope.cost import CostAggregator
from codescope.credentials import EnvironmentCredentialStore, StaticCredentialStore
from codescope.language import detect_language
from codescope.orchestrator import RequestOrchestrator, create_orchestrator
from codescope.providers import EchoProvider, ProviderRegistry, build_registry
from codescope.telemetry import (
    InMemoryReporter,
    LoggingReporter,
    TelemetryContext,
    TelemetryReporter,
)

try:
    __version__ = importlib.metadata.version("codescope")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Entry points
    "RequestOrchestrator",
    "create_orchestrator",
    "resolve_config",
    "FrozenConfig",
    "ResolvedConfig",
    # Requests and results
    "AnalysisRequest",
    "Capability",
    "CapabilityResult",
    "CompositeResult",
    "ErrorKind",
    "Failure",
    "OrchestrationError",
    "ProviderUsage",
    "RequestState",
    "Success",
    "UsageReport",
    # Building blocks
    "CostAggregator",
    "RateLimitRule",
    "RateLimiter",
    "ResilientClient",
    "ResponseCache",
    "detect_language",
    # Providers and credentials
    "EchoProvider",
    "ProviderRegistry",
    "build_registry",
    "EnvironmentCredentialStore",
    "StaticCredentialStore",
    # Telemetry (extension points)
    "InMemoryReporter",
    "LoggingReporter",
    "TelemetryContext",
    "TelemetryReporter",
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
