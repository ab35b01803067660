"""Configuration schema and validation using Pydantic.

Defines the settings schema that validates and coerces configuration values
from every source (environment, files, programmatic) into the correct types
with proper defaults.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from codescope import constants


class RateLimitSetting(BaseModel):
    """One ``rate_limits`` entry: ``limit`` calls per ``window_seconds``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    limit: int = Field(ge=0)
    window_seconds: int = Field(ge=1)


def _default_rate_limits() -> dict[str, RateLimitSetting]:
    return {
        op: RateLimitSetting(limit=limit, window_seconds=window)
        for op, (limit, window) in constants.DEFAULT_RATE_LIMITS.items()
    }


class CodescopeSettings(BaseSettings):
    """Pydantic settings schema for codescope.

    Integrates with environment variables using the ``CODESCOPE_`` prefix.
    ``rate_limits`` is read from the environment as JSON, e.g.
    ``CODESCOPE_RATE_LIMITS='{"explain": {"limit": 5, "window_seconds": 60}}'``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CODESCOPE_",
        env_file=None,  # .env handling lives in EnvironmentConfigLoader
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Cache ---

    cache_max_size: int = Field(
        default=constants.CACHE_MAX_SIZE,
        ge=1,
        description="Maximum number of cached composite results",
    )
    cache_ttl_minutes: int = Field(
        default=constants.CACHE_TTL_MINUTES,
        ge=1,
        description="Minutes a cached result stays servable",
    )
    cache_sweep_interval_seconds: int = Field(
        default=constants.CACHE_SWEEP_INTERVAL,
        ge=1,
        description="Seconds between background sweeps of expired entries",
    )

    # --- Rate limiting and resilience ---

    rate_limits: dict[str, RateLimitSetting] = Field(
        default_factory=_default_rate_limits,
        description="Fixed-window limits per operation name",
    )
    max_retries: int = Field(
        default=constants.MAX_RETRIES,
        ge=0,
        description="Retries per capability call after the first attempt",
    )
    request_deadline_ms: int = Field(
        default=constants.REQUEST_DEADLINE_MS,
        ge=1,
        description="Overall deadline for one orchestrated request",
    )

    # --- Providers ---

    default_provider: str = Field(
        default=constants.DEFAULT_PROVIDER,
        min_length=1,
        description="Provider used when a request names none or an unknown one",
    )
    use_real_api: bool = Field(
        default=False,
        description="Use real providers instead of the offline echo providers",
    )
    chat_completions_base_url: str = Field(
        default=constants.DEFAULT_CHAT_COMPLETIONS_BASE_URL, min_length=1
    )
    chat_completions_model: str = Field(
        default=constants.DEFAULT_CHAT_COMPLETIONS_MODEL, min_length=1
    )
    gemini_model: str = Field(default=constants.DEFAULT_GEMINI_MODEL, min_length=1)
    auxiliary_base_url: str = Field(
        default=constants.DEFAULT_AUXILIARY_BASE_URL, min_length=1
    )
    transport_timeout_seconds: float = Field(
        default=constants.NETWORK_TIMEOUT,
        gt=0,
        description="Per-request HTTP timeout",
    )

    # --- Feature toggles ---

    enable_cost_estimation: bool = True
    enable_diagram: bool = True
    enable_security_scan: bool = True
    enable_documentation: bool = True
    enable_tests: bool = True
    enable_performance: bool = False
    enable_refactoring: bool = False

    @field_validator("rate_limits", mode="before")
    @classmethod
    def parse_rate_limits(cls, v: Any) -> Any:
        """Accept ``[limit, window]`` pairs as well as mappings."""
        if isinstance(v, dict):
            return {
                op: (
                    {"limit": rule[0], "window_seconds": rule[1]}
                    if isinstance(rule, list | tuple)
                    else rule
                )
                for op, rule in v.items()
            }
        return v

    @field_validator("default_provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: Any) -> Any:
        """Strip surrounding whitespace from provider names."""
        return v.strip() if isinstance(v, str) else v

    def to_dict(self) -> dict[str, Any]:
        """Plain dictionary of every field, suitable for SourceMap annotation."""
        return {name: getattr(self, name) for name in type(self).model_fields}


def schema_defaults() -> dict[str, Any]:
    """Default value of every field, without reading any source."""
    return {
        name: field.get_default(call_default_factory=True)
        for name, field in CodescopeSettings.model_fields.items()
    }
