"""Configuration management for codescope.

Resolve once, freeze, then flow:

- ``resolve_config()`` merges programmatic overrides, environment, project
  and home files and defaults into a ``ResolvedConfig`` with per-field origins.
- ``ResolvedConfig.to_frozen()`` yields the immutable ``FrozenConfig`` that the
  orchestrator is built from.
"""

from codescope.core.exceptions import ConfigFileError, ConfigurationError

from .api import (
    check_environment,
    get_effective_profile,
    list_available_profiles,
    print_config_audit,
    resolve_config,
    validate_profile,
)
from .audit import SourceTracker, generate_redacted_audit, generate_telemetry_summary
from .env_loader import EnvironmentConfigLoader
from .file_loader import FileConfigLoader
from .resolver import ConfigResolver
from .schema import CodescopeSettings, RateLimitSetting
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

__all__ = [  # noqa: RUF022
    # Primary API
    "resolve_config",
    "FrozenConfig",
    "ResolvedConfig",
    # Profiles and environment
    "check_environment",
    "get_effective_profile",
    "list_available_profiles",
    "validate_profile",
    "print_config_audit",
    # Building blocks
    "CodescopeSettings",
    "ConfigResolver",
    "EnvironmentConfigLoader",
    "FileConfigLoader",
    "RateLimitSetting",
    "SourceTracker",
    "generate_redacted_audit",
    "generate_telemetry_summary",
    # Types
    "ConfigOrigin",
    "SourceMap",
    # Errors
    "ConfigFileError",
    "ConfigurationError",
]
