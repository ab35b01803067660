"""Public API for the configuration system."""

import argparse
import json
from pathlib import Path
import sys
from typing import Any

from codescope.core.exceptions import ConfigurationError

from .audit import generate_telemetry_summary
from .resolver import ConfigResolver
from .types import ResolvedConfig

# ruff: noqa: T201

_resolver = ConfigResolver()


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Programmatic > Environment > Project file > Home file > Defaults

    Args:
        programmatic: Overrides with the highest precedence. Unknown fields
            are ignored.
        profile: Profile to load from configuration files. Defaults to
            ``CODESCOPE_PROFILE`` when unset.
        use_env_file: Optional ``.env`` file loaded before reading the
            environment.
        project_root: Directory to search for ``pyproject.toml``.

    Returns:
        ResolvedConfig with merged values and per-field origins.

    Raises:
        ConfigurationError: If validation fails.
        ConfigFileError: If a configuration file is malformed.

    Example:
        config = resolve_config({"use_real_api": True}, profile="production")
        orchestrator = create_orchestrator(config.to_frozen())
    """
    return _resolver.resolve(
        programmatic=programmatic,
        profile=profile,
        use_env_file=use_env_file,
        project_root=project_root,
    )


def list_available_profiles(project_root: Path | None = None) -> dict[str, list[str]]:
    """Profile names declared in the project and home configuration files."""
    return _resolver.list_available_profiles(project_root)


def get_effective_profile() -> str | None:
    """Profile named by ``CODESCOPE_PROFILE``, or None."""
    return _resolver.get_effective_profile()


def validate_profile(profile: str, project_root: Path | None = None) -> dict[str, bool]:
    """Check that ``profile`` exists somewhere.

    Raises:
        ConfigurationError: If neither file declares the profile.
    """
    in_project, in_home = _resolver.validate_profile_exists(profile, project_root)
    if not in_project and not in_home:
        available = list_available_profiles(project_root)
        raise ConfigurationError(
            f"Profile '{profile}' not found. Available profiles: "
            f"{available['project'] + available['home']}"
        )
    return {"project": in_project, "home": in_home}


def check_environment() -> dict[str, str]:
    """Current ``CODESCOPE_*`` variables with credentials redacted."""
    return _resolver.env_loader.get_env_summary()


def print_config_audit(config: ResolvedConfig) -> None:
    print(config.audit())


def main(argv: list[str] | None = None) -> int:
    """Print the effective configuration and where each value came from."""
    parser = argparse.ArgumentParser(
        description="Inspect codescope configuration",
        prog="python -m codescope.config",
    )
    parser.add_argument("--profile", help="Configuration profile to use")
    parser.add_argument("--env-file", help="Load this .env file first")
    parser.add_argument(
        "--json", action="store_true", help="Output as JSON instead of text"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only validate (exit code 0=valid, 1=invalid)",
    )
    args = parser.parse_args(argv)

    try:
        config = resolve_config(profile=args.profile, use_env_file=args.env_file)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    if args.check:
        return 0

    if args.json:
        payload = {
            "profile": args.profile or get_effective_profile(),
            "values": _jsonable(config),
            "origin": dict(config.origin),
            "origin_counts": generate_telemetry_summary(config.origin),
        }
        print(json.dumps(payload, indent=2, default=str))
    else:
        print("=== Effective Configuration ===")
        print_config_audit(config)
    return 0


def _jsonable(config: ResolvedConfig) -> dict[str, Any]:
    values = dict(config.values)
    values["rate_limits"] = {
        op: rule.model_dump() for op, rule in values["rate_limits"].items()
    }
    return values
