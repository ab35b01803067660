"""Capability providers and the registry that owns them."""

from .auxiliary import AuxiliaryServiceProvider
from .base import (
    CapabilityProvider,
    DiagramCapability,
    DocumentationCapability,
    ExplainCapability,
    GenerateTestsCapability,
    PerformanceCapability,
    RefactoringCapability,
    SecurityScanCapability,
    capability_boundary,
    capability_method,
    supported_capabilities,
)
from .chat_completions import ChatCompletionsProvider
from .gemini import GeminiProvider
from .mock import EchoProvider
from .registry import ProviderRegistry, build_registry

__all__ = [  # noqa: RUF022
    # Protocols
    "CapabilityProvider",
    "DiagramCapability",
    "DocumentationCapability",
    "ExplainCapability",
    "GenerateTestsCapability",
    "PerformanceCapability",
    "RefactoringCapability",
    "SecurityScanCapability",
    "capability_boundary",
    "capability_method",
    "supported_capabilities",
    # Adapters
    "AuxiliaryServiceProvider",
    "ChatCompletionsProvider",
    "EchoProvider",
    "GeminiProvider",
    # Registry
    "ProviderRegistry",
    "build_registry",
]
