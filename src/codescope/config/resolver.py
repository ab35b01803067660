"""Configuration resolution with precedence handling.

Merges configuration from every source in this order, highest first:
Programmatic > Environment > Project file > Home file > Defaults
"""

import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from codescope.core.exceptions import ConfigurationError

from .audit import SourceTracker
from .env_loader import EnvironmentConfigLoader
from .file_loader import FileConfigLoader
from .schema import CodescopeSettings, schema_defaults
from .types import ConfigOrigin, ResolvedConfig

logger = logging.getLogger(__name__)

PROFILE_ENV = "CODESCOPE_PROFILE"


class ConfigResolver:
    """Resolves configuration from multiple sources with proper precedence."""

    def __init__(self) -> None:
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources.

        Raises:
            ConfigurationError: If the merged values fail validation or an
                environment variable is invalid.
            ConfigFileError: If a configuration file is malformed.
        """
        source_tracker = SourceTracker()
        merged: dict[str, Any] = {}

        if profile is None:
            profile = self.get_effective_profile()

        def apply(values: dict[str, Any], origin: ConfigOrigin) -> None:
            for field, value in values.items():
                if field in merged:
                    merged[field] = value
                    source_tracker.set_origin(field, origin)
                else:
                    logger.debug("Ignoring unknown config field '%s' from %s", field, origin)

        # Step 1: schema defaults
        defaults = schema_defaults()
        merged.update(defaults)
        source_tracker.set_multiple(defaults, "default")

        # Step 2: home file (lower precedence than the project file)
        apply(self.file_loader.load_home_config(profile), "file")

        # Step 3: project file
        apply(self.file_loader.load_project_config(project_root, profile), "file")

        # Step 4: environment
        apply(self.env_loader.load_env_config(env_file=use_env_file), "env")

        # Step 5: programmatic overrides
        if programmatic:
            apply(dict(programmatic), "programmatic")

        # Step 6: validate the merged result without consulting the environment again
        try:
            validated = CodescopeSettings.model_validate(merged)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(
            values=MappingProxyType(validated.to_dict()),
            origin=MappingProxyType(dict(source_tracker.get_source_map())),
        )

    def get_effective_profile(self) -> str | None:
        """Profile named by ``CODESCOPE_PROFILE``, if any."""
        return os.getenv(PROFILE_ENV) or None

    def list_available_profiles(
        self, project_root: Path | None = None
    ) -> dict[str, list[str]]:
        return self.file_loader.list_available_profiles(project_root)

    def validate_profile_exists(
        self, profile: str, project_root: Path | None = None
    ) -> tuple[bool, bool]:
        """``(exists_in_project, exists_in_home)`` for ``profile``."""
        available = self.file_loader.list_available_profiles(project_root)
        return profile in available["project"], profile in available["home"]
