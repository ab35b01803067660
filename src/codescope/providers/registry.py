"""Process-local registry of capability providers.

The registry is built once at startup and owned by the orchestrator. Whether
real or offline providers are registered is decided here, from
``use_real_api``; nothing downstream branches on it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from codescope.constants import AUXILIARY_PROVIDER, CHAT_COMPLETIONS_PROVIDER, GEMINI_PROVIDER
from codescope.core.types import Capability
from codescope.credentials import CredentialStore, EnvironmentCredentialStore

from .auxiliary import AuxiliaryServiceProvider
from .base import CapabilityProvider
from .chat_completions import ChatCompletionsProvider
from .gemini import GeminiProvider
from .mock import EchoProvider

if TYPE_CHECKING:
    from codescope.config import FrozenConfig

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Maps provider names to provider instances.

    One provider may additionally be designated as the auxiliary provider,
    which serves the flat-fee analysis capabilities for every request
    regardless of the AI provider the request asked for.
    """

    def __init__(self) -> None:
        self._providers: dict[str, CapabilityProvider] = {}
        self._auxiliary: CapabilityProvider | None = None

    def register(self, provider: CapabilityProvider, *, auxiliary: bool = False) -> None:
        """Add ``provider`` under its name (replacing any previous one)."""
        if not getattr(provider, "name", None):
            raise ValueError("provider must have a non-empty name")
        if auxiliary:
            self._auxiliary = provider
        else:
            self._providers[provider.name] = provider

    def get(self, name: str | None) -> CapabilityProvider | None:
        """Return the provider registered as ``name``, if any."""
        if name is None:
            return None
        return self._providers.get(name)

    @property
    def auxiliary(self) -> CapabilityProvider | None:
        return self._auxiliary

    def names(self) -> tuple[str, ...]:
        return tuple(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    async def aclose(self) -> None:
        """Close every registered provider; failures are logged, not raised."""
        seen: set[int] = set()
        for provider in (*self._providers.values(), self._auxiliary):
            if provider is None or id(provider) in seen:
                continue
            seen.add(id(provider))
            try:
                await provider.aclose()
            except Exception:
                logger.exception("Failed to close provider '%s'", provider.name)


def build_registry(
    config: FrozenConfig, credentials: CredentialStore | None = None
) -> ProviderRegistry:
    """Build the registry implied by ``config``.

    With ``use_real_api`` off, every name is backed by an ``EchoProvider``
    exposing the same capabilities as the real adapter it stands in for.
    """
    registry = ProviderRegistry()
    if not config.use_real_api:
        logger.debug("use_real_api is off; registering offline providers")
        registry.register(
            EchoProvider(
                CHAT_COMPLETIONS_PROVIDER,
                capabilities=(
                    Capability.EXPLAIN,
                    Capability.DIAGRAM,
                    Capability.SECURITY_SCAN,
                    Capability.DOCUMENTATION,
                    Capability.TESTS,
                ),
            )
        )
        registry.register(
            EchoProvider(
                GEMINI_PROVIDER,
                capabilities=(
                    Capability.EXPLAIN,
                    Capability.DIAGRAM,
                    Capability.SECURITY_SCAN,
                ),
            )
        )
        registry.register(
            EchoProvider(
                AUXILIARY_PROVIDER,
                capabilities=(Capability.PERFORMANCE, Capability.REFACTORING),
            ),
            auxiliary=True,
        )
        return registry

    store = credentials or EnvironmentCredentialStore()
    registry.register(
        ChatCompletionsProvider(
            store,
            model=config.chat_completions_model,
            base_url=config.chat_completions_base_url,
            timeout=config.transport_timeout_seconds,
        )
    )
    registry.register(GeminiProvider(store, model=config.gemini_model))
    registry.register(
        AuxiliaryServiceProvider(
            store,
            base_url=config.auxiliary_base_url,
            timeout=config.transport_timeout_seconds,
        ),
        auxiliary=True,
    )
    return registry
