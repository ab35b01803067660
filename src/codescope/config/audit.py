"""Configuration audit and source tracking.

Tracks where each configuration value originated and renders a report of it.
URLs are shown without embedded userinfo so the report is safe to log.
"""

from typing import Any
from urllib.parse import urlsplit, urlunsplit

from .types import ConfigOrigin, SourceMap


class SourceTracker:
    """Tracks the origin of configuration values during resolution."""

    def __init__(self) -> None:
        self._origins: dict[str, ConfigOrigin] = {}

    def set_origin(self, field: str, origin: ConfigOrigin) -> None:
        """Record the origin of a configuration field."""
        self._origins[field] = origin

    def set_multiple(self, fields: dict[str, Any], origin: ConfigOrigin) -> None:
        """Record the same origin for several fields."""
        for field in fields:
            self._origins[field] = origin

    def get_source_map(self) -> SourceMap:
        """Copy of the current field -> origin mapping."""
        return dict(self._origins)


def generate_telemetry_summary(source_map: SourceMap) -> dict[str, int]:
    """Counts per origin type (e.g. ``{"env": 3, "default": 12}``)."""
    counts: dict[str, int] = {}
    for origin in source_map.values():
        counts[origin] = counts.get(origin, 0) + 1
    return counts


def _redact_url(value: str) -> str:
    parts = urlsplit(value)
    if not parts.username and not parts.password:
        return value
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"<redacted>@{host}", parts.path, parts.query, ""))


def _display(field: str, value: Any) -> str:
    if field.endswith("_url") and isinstance(value, str):
        return _redact_url(value)
    if field == "rate_limits" and isinstance(value, dict):
        rules = ", ".join(
            f"{op}={getattr(r, 'limit', '?')}/{getattr(r, 'window_seconds', '?')}s"
            for op, r in sorted(value.items())
        )
        return "{" + rules + "}"
    return str(value)


def generate_redacted_audit(config_dict: dict[str, Any], source_map: SourceMap) -> str:
    """One ``field: origin:value`` line per field, in schema order."""
    lines = []
    for field, value in config_dict.items():
        origin = source_map.get(field, "default")
        shown = _display(field, value)
        if origin == "env":
            lines.append(f"{field}: env:CODESCOPE_{field.upper()}={shown}")
        else:
            lines.append(f"{field}: {origin}:{shown}")
    return "\n".join(lines)
