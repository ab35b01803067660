"""OpenAI-style ``/chat/completions`` provider.

Implements explain, diagram, security scan, documentation and test
generation over the shared HTTP transport. Explanation text goes through the
best-effort section parser; the JSON facets are validated with pydantic.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from codescope.client.transport import HTTPTransport
from codescope.constants import (
    CHAT_COMPLETIONS_PROVIDER,
    DEFAULT_CHAT_COMPLETIONS_BASE_URL,
    DEFAULT_CHAT_COMPLETIONS_MODEL,
    NETWORK_TIMEOUT,
)
from codescope.core.exceptions import AuthError, MalformedResponseError
from codescope.core.models import GeneratedDocumentation, GeneratedTest, SecurityFinding
from codescope.core.types import CapabilityResult, Success, UsageReport
from codescope.cost import cost_for_tokens, estimate_provider_usage
from codescope.credentials import CredentialStore

from .base import capability_boundary
from .parsing import (
    extract_mermaid,
    parse_json_list,
    parse_json_payload,
    parse_structured_explanation,
)
from .prompts import (
    PromptBundle,
    diagram_prompt,
    documentation_prompt,
    explain_prompt,
    security_prompt,
    tests_prompt,
)

logger = logging.getLogger(__name__)


class ChatCompletionsProvider:
    """Chat-completions capability provider."""

    def __init__(
        self,
        credentials: CredentialStore,
        *,
        name: str = CHAT_COMPLETIONS_PROVIDER,
        model: str = DEFAULT_CHAT_COMPLETIONS_MODEL,
        base_url: str = DEFAULT_CHAT_COMPLETIONS_BASE_URL,
        timeout: float = NETWORK_TIMEOUT,
        transport: HTTPTransport | None = None,
    ):
        self.name = name
        self.model = model
        self._credentials = credentials
        self._transport = transport or HTTPTransport(
            base_url, timeout=timeout, provider=name
        )

    def __repr__(self) -> str:
        return f"ChatCompletionsProvider(name={self.name!r}, model={self.model!r})"

    # --- Capabilities ---

    async def explain(self, text: str, language: str, instruction: str) -> CapabilityResult:
        return await capability_boundary(
            self._run(
                explain_prompt(text, language, instruction),
                parse_structured_explanation,
            )
        )

    async def generate_diagram(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult:
        return await capability_boundary(
            self._run(diagram_prompt(text, language, instruction), extract_mermaid)
        )

    async def scan_security(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult:
        return await capability_boundary(
            self._run(
                security_prompt(text, language, instruction),
                lambda content: parse_json_list(content, SecurityFinding),
            )
        )

    async def generate_documentation(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult:
        return await capability_boundary(
            self._run(
                documentation_prompt(text, language, instruction),
                lambda content: parse_json_payload(content, GeneratedDocumentation),
            )
        )

    async def generate_tests(
        self, text: str, language: str, instruction: str
    ) -> CapabilityResult:
        return await capability_boundary(
            self._run(
                tests_prompt(text, language, instruction),
                lambda content: parse_json_list(content, GeneratedTest),
            )
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    # --- Internals ---

    async def _run(
        self, prompt: PromptBundle, parse: Callable[[str], Any]
    ) -> Success:
        credential = self._credentials.get_credential(self.name)
        if not credential:
            raise AuthError(
                f"No credential configured for provider '{self.name}'", provider=self.name
            )

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "max_tokens": prompt.max_tokens,
        }
        data = await self._transport.post_json(
            "/chat/completions", body, credential=credential
        )
        content = self._extract_content(data)
        payload = parse(content)
        return Success(payload=payload, usage=self._usage(data, prompt, content))

    def _extract_content(self, data: dict[str, Any]) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(
                "Chat completion response has no message content", provider=self.name
            ) from e
        if not isinstance(content, str):
            raise MalformedResponseError(
                "Chat completion content is not text", provider=self.name
            )
        return content

    def _usage(self, data: dict[str, Any], prompt: PromptBundle, content: str) -> UsageReport:
        usage = data.get("usage")
        total = usage.get("total_tokens") if isinstance(usage, dict) else None
        if isinstance(total, int) and total >= 0:
            return UsageReport.for_provider(
                self.name, total, cost_for_tokens(self.model, total)
            )
        logger.debug("No usage block from %s; estimating from text length", self.name)
        return estimate_provider_usage(self.name, self.model, prompt.text, content)
