"""Core configuration data types.

Configuration follows the resolve-once, freeze-then-flow pattern: sources are
merged into a ``ResolvedConfig`` (which remembers where each value came
from), then frozen into the ``FrozenConfig`` that the orchestrator consumes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, NamedTuple

from codescope import constants
from codescope.client.rate_limiter import RateLimitRule
from codescope.core.types import Capability

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

_FEATURE_TOGGLES: dict[Capability, str] = {
    Capability.DIAGRAM: "enable_diagram",
    Capability.SECURITY_SCAN: "enable_security_scan",
    Capability.DOCUMENTATION: "enable_documentation",
    Capability.TESTS: "enable_tests",
    Capability.PERFORMANCE: "enable_performance",
    Capability.REFACTORING: "enable_refactoring",
}


def _default_rules() -> Mapping[str, RateLimitRule]:
    return MappingProxyType(
        {
            op: RateLimitRule(limit, window)
            for op, (limit, window) in constants.DEFAULT_RATE_LIMITS.items()
        }
    )


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration handed to the orchestrator at construction.

    Every field has the same default as the settings schema, so tests and
    embedding code can build one directly.
    """

    cache_max_size: int = constants.CACHE_MAX_SIZE
    cache_ttl_minutes: int = constants.CACHE_TTL_MINUTES
    cache_sweep_interval_seconds: int = constants.CACHE_SWEEP_INTERVAL
    rate_limits: Mapping[str, RateLimitRule] = field(default_factory=_default_rules)
    max_retries: int = constants.MAX_RETRIES
    request_deadline_ms: int = constants.REQUEST_DEADLINE_MS
    default_provider: str = constants.DEFAULT_PROVIDER
    use_real_api: bool = False
    chat_completions_base_url: str = constants.DEFAULT_CHAT_COMPLETIONS_BASE_URL
    chat_completions_model: str = constants.DEFAULT_CHAT_COMPLETIONS_MODEL
    gemini_model: str = constants.DEFAULT_GEMINI_MODEL
    auxiliary_base_url: str = constants.DEFAULT_AUXILIARY_BASE_URL
    transport_timeout_seconds: float = constants.NETWORK_TIMEOUT
    enable_cost_estimation: bool = True
    enable_diagram: bool = True
    enable_security_scan: bool = True
    enable_documentation: bool = True
    enable_tests: bool = True
    enable_performance: bool = False
    enable_refactoring: bool = False

    def __post_init__(self) -> None:
        """Freeze the rate limit mapping."""
        rules = {
            op: rule
            if isinstance(rule, RateLimitRule)
            else RateLimitRule(int(rule.limit), float(rule.window_seconds))
            for op, rule in self.rate_limits.items()
        }
        object.__setattr__(self, "rate_limits", MappingProxyType(rules))

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_minutes * 60.0

    @property
    def request_deadline_seconds(self) -> float:
        return self.request_deadline_ms / 1000.0

    def is_enabled(self, capability: Capability) -> bool:
        """Feature toggle for ``capability``; the primary explanation is always on."""
        if capability.is_primary:
            return True
        return bool(getattr(self, _FEATURE_TOGGLES[capability]))

    def enabled_capabilities(self) -> frozenset[Capability]:
        return frozenset(c for c in Capability if self.is_enabled(c))


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    ``values`` holds the validated field values; ``origin`` records which
    source supplied each one.
    """

    values: Mapping[str, Any]
    origin: SourceMap

    def __getattr__(self, name: str) -> Any:
        try:
            return self.values[name]
        except KeyError:
            raise AttributeError(name) from None

    def to_frozen(self) -> FrozenConfig:
        """Convert to the immutable configuration used at runtime."""
        return FrozenConfig(**dict(self.values))

    def with_overrides(self, **overrides: object) -> ResolvedConfig:
        """New ResolvedConfig with programmatic overrides applied.

        Unknown fields are ignored. Values are not re-validated; resolve
        again through ``resolve_config`` when validation matters.
        """
        new_values = dict(self.values)
        new_origin = dict(self.origin)
        for name, value in overrides.items():
            if name in new_values:
                new_values[name] = value
                new_origin[name] = "programmatic"
        return ResolvedConfig(MappingProxyType(new_values), MappingProxyType(new_origin))

    def audit(self) -> str:
        """Human-readable report of each field's value and origin."""
        from .audit import generate_redacted_audit

        return generate_redacted_audit(dict(self.values), self.origin)
