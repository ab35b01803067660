"""Environment variable configuration loading.

Reads ``CODESCOPE_*`` variables through the pydantic-settings environment
source, optionally after loading a ``.env`` file with python-dotenv.
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from codescope.core.exceptions import ConfigurationError

from .schema import CodescopeSettings

ENV_PREFIX = "CODESCOPE_"


class EnvironmentConfigLoader:
    """Loads the configuration fields that are set in the environment."""

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Return only the fields actually set via ``CODESCOPE_*`` variables.

        Args:
            env_file: Optional ``.env`` file loaded first. Variables already
                present in the process environment are not overridden.

        Raises:
            ConfigurationError: If the env file is missing or a variable holds
                an invalid value.
        """
        if env_file:
            self._load_env_file(env_file)

        if not self.field_variables():
            return {}

        try:
            settings = CodescopeSettings()
        except (ValidationError, ValueError) as e:
            names = ", ".join(sorted(self.field_variables()))
            raise ConfigurationError(
                f"Invalid environment variable values ({names}): {e}"
            ) from e
        return {name: getattr(settings, name) for name in settings.model_fields_set}

    def field_variables(self) -> dict[str, str]:
        """``CODESCOPE_*`` variables that correspond to settings fields."""
        known = {f"{ENV_PREFIX}{name.upper()}" for name in CodescopeSettings.model_fields}
        return {k: v for k, v in os.environ.items() if k.upper() in known}

    def get_env_summary(self) -> dict[str, str]:
        """All ``CODESCOPE_*`` variables, with credentials redacted."""
        summary = {}
        for key, value in sorted(os.environ.items()):
            if not key.upper().startswith(ENV_PREFIX):
                continue
            summary[key] = "<redacted>" if key.upper().endswith("_API_KEY") else value
        return summary

    def _load_env_file(self, env_file: str | Path) -> None:
        env_path = Path(env_file)
        if not env_path.exists():
            raise ConfigurationError(f"Environment file not found: {env_path}")
        load_dotenv(env_path, override=False)
