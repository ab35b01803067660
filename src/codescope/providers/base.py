"""Capability protocols implemented by provider adapters.

Providers opt into capabilities by implementing the matching method. The
orchestrator discovers support with ``capability_method`` and treats a
missing method as an automatic skip, never as an error. Every capability
method has the same shape, ``async (text, language, instruction) ->
CapabilityResult``, and has no side effect beyond its own network call.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import Protocol, runtime_checkable

from codescope.core.exceptions import ProviderError
from codescope.core.types import Capability, CapabilityResult

logger = logging.getLogger(__name__)

CapabilityCall = Callable[[str, str, str], Awaitable[CapabilityResult]]


@runtime_checkable
class CapabilityProvider(Protocol):
    """Minimal surface every provider exposes."""

    name: str

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        ...


@runtime_checkable
class ExplainCapability(Protocol):
    """Produces the primary structured explanation."""

    async def explain(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult: ...


@runtime_checkable
class DiagramCapability(Protocol):
    """Produces a flowchart diagram (Mermaid source)."""

    async def generate_diagram(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult: ...


@runtime_checkable
class SecurityScanCapability(Protocol):
    """Produces security findings."""

    async def scan_security(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult: ...


@runtime_checkable
class DocumentationCapability(Protocol):
    """Produces generated documentation."""

    async def generate_documentation(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult: ...


@runtime_checkable
class GenerateTestsCapability(Protocol):
    """Produces generated test cases."""

    async def generate_tests(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult: ...


@runtime_checkable
class PerformanceCapability(Protocol):
    """Produces performance insights."""

    async def profile_performance(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult: ...


@runtime_checkable
class RefactoringCapability(Protocol):
    """Produces refactoring suggestions."""

    async def suggest_refactoring(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult: ...


CAPABILITY_PROTOCOLS: dict[Capability, tuple[type, str]] = {
    Capability.EXPLAIN: (ExplainCapability, "explain"),
    Capability.DIAGRAM: (DiagramCapability, "generate_diagram"),
    Capability.SECURITY_SCAN: (SecurityScanCapability, "scan_security"),
    Capability.DOCUMENTATION: (DocumentationCapability, "generate_documentation"),
    Capability.TESTS: (GenerateTestsCapability, "generate_tests"),
    Capability.PERFORMANCE: (PerformanceCapability, "profile_performance"),
    Capability.REFACTORING: (RefactoringCapability, "suggest_refactoring"),
}


def capability_method(provider: object, capability: Capability) -> CapabilityCall | None:
    """Bound method implementing ``capability`` on ``provider``, or None.

    A provider may narrow what it exposes with a ``capabilities`` collection;
    anything outside it is unsupported even when the method exists.
    """
    declared = getattr(provider, "capabilities", None)
    if declared is not None and capability not in declared:
        return None
    protocol, attr = CAPABILITY_PROTOCOLS[capability]
    if not isinstance(provider, protocol):
        return None
    method = getattr(provider, attr, None)
    return method if callable(method) else None


def supported_capabilities(provider: object) -> frozenset[Capability]:
    """All capabilities ``provider`` implements."""
    return frozenset(
        c for c in Capability if capability_method(provider, c) is not None
    )


async def capability_boundary(call: Awaitable[CapabilityResult]) -> CapabilityResult:
    """Await ``call``, converting a raised ``ProviderError`` into its ``Failure``."""
    try:
        return await call
    except ProviderError as e:
        logger.debug("Provider %s failed: %s", e.provider or "<unknown>", e)
        return e.to_failure()
