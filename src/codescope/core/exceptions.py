"""Exception hierarchy for codescope.

Provider faults are raised as ``ProviderError`` subclasses inside adapters and
converted to ``Failure`` values at the capability boundary. Nothing above the
provider layer raises for a provider fault.
"""

from __future__ import annotations

from codescope.core.types import ErrorKind, Failure


class CodescopeError(Exception):
    """Base exception for all codescope errors."""


class ConfigurationError(CodescopeError):
    """Raised when configuration values are missing or invalid."""


class ConfigFileError(ConfigurationError):
    """Raised when a configuration file cannot be read or parsed."""


class ProviderError(CodescopeError):
    """A capability provider could not fulfil a call.

    Subclasses pin ``kind`` to one entry of the error taxonomy so that the
    resilient client can decide whether to retry without inspecting messages.
    """

    kind: ErrorKind = ErrorKind.SERVER

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        """Initialize with a human-readable message and optional provider name."""
        self.provider = provider
        super().__init__(message)

    def to_failure(self) -> Failure:
        """Convert this error into the equivalent capability ``Failure``."""
        return Failure(kind=self.kind, message=str(self))


class AuthError(ProviderError):
    """Bad or missing credential. Never retried."""

    kind = ErrorKind.AUTH


class RateLimitedError(ProviderError):
    """The provider throttled the call; may carry a server-suggested delay."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        """Initialize with an optional ``retry_after`` delay in seconds."""
        self.retry_after = retry_after
        super().__init__(message, provider=provider)

    def to_failure(self) -> Failure:  # noqa: D102
        return Failure(kind=self.kind, message=str(self), retry_after=self.retry_after)


class ServerError(ProviderError):
    """Transient provider-side or transport failure."""

    kind = ErrorKind.SERVER


class MalformedResponseError(ProviderError):
    """The provider answered with data the capability contract cannot parse."""

    kind = ErrorKind.MALFORMED


class OrchestrationTimeoutError(CodescopeError):
    """The overall request deadline elapsed before a capability settled."""

    def __init__(self, capability: str, deadline_ms: int) -> None:
        """Record which capability missed the deadline."""
        self.capability = capability
        self.deadline_ms = deadline_ms
        super().__init__(
            f"Capability '{capability}' did not settle within {deadline_ms}ms"
        )

    def to_failure(self) -> Failure:
        """Convert into a per-facet timeout ``Failure``."""
        return Failure(kind=ErrorKind.TIMEOUT, message=str(self))
