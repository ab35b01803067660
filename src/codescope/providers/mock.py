"""Deterministic offline provider.

Used whenever ``use_real_api`` is off and as the test double for the
production interfaces. Responses are derived from the input only, and usage
is estimated from text length so that cost accounting still flows.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import hashlib
import logging

from codescope.constants import AUXILIARY_SERVICE_FEES
from codescope.core.exceptions import ProviderError
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
    Capability,
    CapabilityResult,
    Failure,
    Success,
    UsageReport,
)
from codescope.cost import estimate_provider_usage

logger = logging.getLogger(__name__)

MOCK_MODEL = "mock"


class EchoProvider:
    """Offline provider echoing its input into every facet.

    Args:
        name: Registry name of this provider.
        capabilities: Subset of capabilities to expose; the rest are reported
            as unsupported.
        failures: Per-capability outcome override. A ``Failure`` is returned
            as-is; a ``ProviderError`` is raised on every call.
    """

    def __init__(
        self,
        name: str = "echo",
        *,
        capabilities: Iterable[Capability] | None = None,
        failures: Mapping[Capability, Failure | ProviderError] | None = None,
    ):
        self.name = name
        self.capabilities = frozenset(
            Capability if capabilities is None else capabilities
        )
        self._failures = dict(failures or {})
        self.calls: list[Capability] = []

    def __repr__(self) -> str:
        return f"EchoProvider(name={self.name!r})"

    # --- Capabilities ---

    async def explain(self, text: str, language: str, instruction: str) -> CapabilityResult:
        def build() -> StructuredExplanation:
            first = text.strip().splitlines()[0] if text.strip() else ""
            focus = f" Focus: {instruction.strip()}." if instruction.strip() else ""
            return StructuredExplanation(
                summary=f"echo: {language} snippet of {len(text)} characters.{focus}",
                line_by_line=(LineExplanation(lines="1", explanation=f"echo: {first}"),)
                if first
                else (),
                suggestions=("No suggestions (offline provider).",),
            )

        return self._respond(Capability.EXPLAIN, text, build)

    async def generate_diagram(
        self, text: str, language: str, instruction: str  # noqa: ARG002
    ) -> CapabilityResult:
        return self._respond(
            Capability.DIAGRAM,
            text,
            lambda: f"graph TD\n  A[{language} input] --> B[{self._digest(text)}]",
        )

    async def scan_security(
        self, text: str, language: str, instruction: str  # noqa: ARG002
    ) -> CapabilityResult:
        return self._respond(
            Capability.SECURITY_SCAN,
            text,
            lambda: (
                SecurityFinding(
                    id=f"ECHO-{self._digest(text)}",
                    description="Offline scan; no analysis performed.",
                    severity=Severity.INFO,
                ),
            ),
        )

    async def generate_documentation(
        self, text: str, language: str, instruction: str  # noqa: ARG002
    ) -> CapabilityResult:
        return self._respond(
            Capability.DOCUMENTATION,
            text,
            lambda: GeneratedDocumentation(
                format="Markdown", content=f"# {language}\n\necho: {len(text)} characters"
            ),
        )

    async def generate_tests(
        self, text: str, language: str, instruction: str  # noqa: ARG002
    ) -> CapabilityResult:
        return self._respond(
            Capability.TESTS,
            text,
            lambda: (
                GeneratedTest(
                    description=f"echo test for {language}",
                    code=f"# {self._digest(text)}",
                    framework="echo",
                ),
            ),
        )

    async def profile_performance(
        self, text: str, language: str, instruction: str  # noqa: ARG002
    ) -> CapabilityResult:
        return self._respond(
            Capability.PERFORMANCE,
            text,
            lambda: (
                PerformanceInsight(
                    id=f"ECHO-PERF-{self._digest(text)}",
                    description="Offline profile; no analysis performed.",
                    impact="low",
                ),
            ),
            flat_fee_service="performance_profiler",
        )

    async def suggest_refactoring(
        self, text: str, language: str, instruction: str  # noqa: ARG002
    ) -> CapabilityResult:
        return self._respond(
            Capability.REFACTORING,
            text,
            lambda: (
                RefactoringSuggestion(
                    id=f"ECHO-REF-{self._digest(text)}",
                    description="Offline optimizer; no analysis performed.",
                    effort="low",
                ),
            ),
            flat_fee_service="refactoring_optimizer",
        )

    async def aclose(self) -> None:
        return None

    # --- Internals ---

    def _respond(
        self,
        capability: Capability,
        text: str,
        build,  # noqa: ANN001
        *,
        flat_fee_service: str | None = None,
    ) -> CapabilityResult:
        self.calls.append(capability)
        override = self._failures.get(capability)
        if isinstance(override, ProviderError):
            raise override
        if isinstance(override, Failure):
            return override

        payload = build()
        if flat_fee_service is not None:
            usage = UsageReport.for_auxiliary(
                flat_fee_service, AUXILIARY_SERVICE_FEES.get(flat_fee_service, 0.0)
            )
        else:
            usage = estimate_provider_usage(self.name, MOCK_MODEL, text, str(payload))
        return Success(payload=payload, usage=usage)

    @staticmethod
    def _digest(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()[:8]
