"""Credential lookup boundary.

codescope never stores secrets. Providers ask a ``CredentialStore`` for a
credential by name on every call and treat an absent value as an auth
failure.
"""

from collections.abc import Mapping
import os
from typing import Protocol, runtime_checkable


@runtime_checkable
class CredentialStore(Protocol):
    """Source of provider credentials."""

    def get_credential(self, name: str) -> str | None:
        """Return the secret for ``name`` or None when absent."""
        ...


class EnvironmentCredentialStore:
    """Reads ``<PREFIX><NAME>_API_KEY`` from the process environment.

    ``name`` is upper-cased and dashes become underscores, so the
    ``chat-completions`` credential lives in
    ``CODESCOPE_CHAT_COMPLETIONS_API_KEY``.
    """

    def __init__(self, prefix: str = "CODESCOPE_"):
        self.prefix = prefix

    def variable_for(self, name: str) -> str:
        return f"{self.prefix}{name.upper().replace('-', '_')}_API_KEY"

    def get_credential(self, name: str) -> str | None:
        value = os.environ.get(self.variable_for(name), "").strip()
        return value or None

    def __repr__(self) -> str:
        return f"EnvironmentCredentialStore(prefix={self.prefix!r})"


class StaticCredentialStore:
    """In-memory credentials, for tests and embedding applications."""

    def __init__(self, credentials: Mapping[str, str] | None = None):
        self._credentials = dict(credentials or {})

    def get_credential(self, name: str) -> str | None:
        return self._credentials.get(name) or None

    def __repr__(self) -> str:
        names = ", ".join(sorted(self._credentials))
        return f"StaticCredentialStore(<redacted: {names}>)"
