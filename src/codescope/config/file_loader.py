"""File-based configuration loading with profile support.

Loads configuration from TOML files: the project's ``pyproject.toml``
(``[tool.codescope]``) and a home file (``~/.config/codescope.toml``, or the
path named by ``CODESCOPE_CONFIG_HOME``). Both support named profiles under
``profiles.<name>``.
"""

import logging
import os
from pathlib import Path
import tomllib
from typing import Any

from codescope.core.exceptions import ConfigFileError

logger = logging.getLogger(__name__)

HOME_CONFIG_ENV = "CODESCOPE_CONFIG_HOME"


class FileConfigLoader:
    """Loads configuration from TOML files with profile support."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load ``[tool.codescope]`` from the nearest ``pyproject.toml``.

        Args:
            project_root: Directory to start searching from (defaults to cwd,
                then parents).
            profile: Optional profile under ``[tool.codescope.profiles.<name>]``
                layered on top of the base section. A profile this file does
                not declare leaves the base section as is.

        Returns:
            Configuration values; empty if there is no file or section.

        Raises:
            ConfigFileError: If the file cannot be parsed.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return {}
        data = self._read_toml(pyproject_path)
        section = data.get("tool", {}).get("codescope", {})
        if not section:
            return {}
        return self._select(section, profile, pyproject_path)

    def load_home_config(self, profile: str | None = None) -> dict[str, Any]:
        """Load the home configuration file.

        Raises:
            ConfigFileError: If the file cannot be parsed.
        """
        path = self.home_config_path()
        if not path.exists():
            return {}
        return self._select(self._read_toml(path), profile, path)

    def list_available_profiles(
        self, project_root: Path | None = None
    ) -> dict[str, list[str]]:
        """Profile names declared in the project and home files."""
        profiles: dict[str, list[str]] = {"project": [], "home": []}
        try:
            pyproject_path = self._find_pyproject_toml(project_root)
            if pyproject_path:
                section = (
                    self._read_toml(pyproject_path).get("tool", {}).get("codescope", {})
                )
                profiles["project"] = list(section.get("profiles", {}))
        except ConfigFileError:
            pass
        try:
            path = self.home_config_path()
            if path.exists():
                profiles["home"] = list(self._read_toml(path).get("profiles", {}))
        except ConfigFileError:
            pass
        return profiles

    def home_config_path(self) -> Path:
        override = os.environ.get(HOME_CONFIG_ENV)
        if override:
            return Path(override).expanduser()
        return Path.home() / ".config" / "codescope.toml"

    def _select(
        self, section: dict[str, Any], profile: str | None, path: Path
    ) -> dict[str, Any]:
        base = dict(section)
        profiles = base.pop("profiles", {}) or {}
        if not profile:
            return base
        if profile not in profiles:
            logger.debug(
                "Profile '%s' not declared in %s; using base section", profile, path
            )
            return base
        return {**base, **dict(profiles[profile])}

    def _read_toml(self, path: Path) -> dict[str, Any]:
        try:
            with path.open(mode="rb") as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(
                f"Config file error in {path}: failed to parse TOML: {e}"
            ) from e

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        current = Path(start_dir or Path.cwd()).resolve()
        while True:
            candidate = current / "pyproject.toml"
            if candidate.exists():
                return candidate
            if current == current.parent:
                return None
            current = current.parent
