"""Facet payload models.

Providers validate their native responses against these models. Validation
failures surface as ``MalformedResponseError`` so that the orchestrator never
sees a partially-parsed structure.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Severity(str, Enum):
    """Severity of a security finding."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class LineExplanation(_Payload):
    """Explanation of one line or line range."""

    lines: str
    explanation: str


class StructuredExplanation(_Payload):
    """The primary explanation facet."""

    summary: str = Field(min_length=1)
    line_by_line: tuple[LineExplanation, ...] = ()
    time_complexity: str = "N/A"
    space_complexity: str = "N/A"
    suggestions: tuple[str, ...] = ()
    degraded: bool = False

    @classmethod
    def placeholder(cls, reason: str) -> StructuredExplanation:
        """Degraded explanation used when a provider response cannot be parsed."""
        return cls(summary=f"Explanation unavailable: {reason}", degraded=True)


class SecurityFinding(_Payload):
    """One potential vulnerability reported by a security scan."""

    id: str
    description: str
    severity: Severity
    suggested_fix: str = Field(default="", alias="suggestedFix")
    lines: str = "N/A"
    cwe_id: str | None = Field(default=None, alias="cweId")
    owasp_category: str | None = Field(default=None, alias="owaspCategory")

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v


class GeneratedDocumentation(_Payload):
    """Generated documentation for the analyzed code."""

    format: str = "Markdown"
    content: str


class GeneratedTest(_Payload):
    """One generated test case."""

    description: str
    code: str
    framework: str = ""
    type: Literal["unit", "integration", "e2e"] = "unit"
    lines_covered: str = Field(default="", alias="linesCovered")


class PerformanceInsight(_Payload):
    """A performance observation from the profiling service."""

    id: str
    description: str
    impact: Literal["low", "medium", "high", "critical"] = "medium"
    lines: str = "N/A"
    suggested_improvement: str = Field(default="", alias="suggestedImprovement")


class RefactoringSuggestion(_Payload):
    """A refactoring suggestion from the optimizer service."""

    id: str
    description: str
    pattern: str = ""
    lines: str = "N/A"
    effort: Literal["low", "medium", "high"] = "medium"
    current_snippet: str = Field(default="", alias="currentCodeSnippet")
    suggested_snippet: str = Field(default="", alias="suggestedCodeSnippet")
