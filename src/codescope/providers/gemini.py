"""Gemini provider backed by the ``google-genai`` SDK.

Implements explain, diagram and security scan. SDK errors are classified by
their HTTP status code; the SDK client is created lazily from the current
credential so that a rotated key takes effect on the next call.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from codescope.constants import DEFAULT_GEMINI_MODEL, GEMINI_PROVIDER
from codescope.core.exceptions import (
    AuthError,
    MalformedResponseError,
    ProviderError,
    RateLimitedError,
    ServerError,
)
from codescope.core.models import SecurityFinding
from codescope.core.types import CapabilityResult, Success, UsageReport
from codescope.cost import cost_for_tokens, estimate_provider_usage
from codescope.credentials import CredentialStore

from .base import capability_boundary
from .parsing import extract_mermaid, parse_json_list, parse_structured_explanation
from .prompts import PromptBundle, diagram_prompt, explain_prompt, security_prompt

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]


def _default_client_factory(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


def classify_api_error(error: genai_errors.APIError, provider: str) -> ProviderError:
    """Map an SDK ``APIError`` onto the provider error taxonomy."""
    code = getattr(error, "code", None) or 0
    message = f"Gemini API error {code}: {getattr(error, 'message', None) or error}"
    if code in (401, 403):
        return AuthError(message, provider=provider)
    if code == 429:
        return RateLimitedError(message, provider=provider)
    if code >= 500:
        return ServerError(message, provider=provider)
    return MalformedResponseError(message, provider=provider)


class GeminiProvider:
    """Capability provider for Google Gemini models."""

    def __init__(
        self,
        credentials: CredentialStore,
        *,
        name: str = GEMINI_PROVIDER,
        model: str = DEFAULT_GEMINI_MODEL,
        client_factory: ClientFactory = _default_client_factory,
    ):
        self.name = name
        self.model = model
        self._credentials = credentials
        self._client_factory = client_factory
        self._client: Any = None
        self._client_key: str | None = None

    def __repr__(self) -> str:
        return f"GeminiProvider(name={self.name!r}, model={self.model!r})"

    async def explain(self, text: str, language: str, instruction: str) -> CapabilityResult:
        return await capability_boundary(
            self._run(
                explain_prompt(text, language, instruction), parse_structured_explanation
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

    async def aclose(self) -> None:
        client, self._client, self._client_key = self._client, None, None
        aio = getattr(client, "aio", None)
        if aio is not None and hasattr(aio, "aclose"):
            await aio.aclose()

    def _client_for(self, api_key: str) -> Any:
        if self._client is None or self._client_key != api_key:
            self._client = self._client_factory(api_key)
            self._client_key = api_key
        return self._client

    async def _run(self, prompt: PromptBundle, parse: Callable[[str], Any]) -> Success:
        api_key = self._credentials.get_credential(self.name)
        if not api_key:
            raise AuthError(
                f"No credential configured for provider '{self.name}'", provider=self.name
            )
        client = self._client_for(api_key)
        config = genai_types.GenerateContentConfig(
            system_instruction=prompt.system,
            max_output_tokens=prompt.max_tokens,
            response_mime_type="application/json" if prompt.expects_json else "text/plain",
        )
        try:
            response = await client.aio.models.generate_content(
                model=self.model, contents=prompt.user, config=config
            )
        except genai_errors.APIError as e:
            raise classify_api_error(e, self.name) from e

        try:
            content = response.text
        except (ValueError, AttributeError) as e:
            raise MalformedResponseError(
                "Gemini response has no text", provider=self.name
            ) from e
        if not content:
            raise MalformedResponseError("Gemini response was empty", provider=self.name)

        payload = parse(content)
        return Success(payload=payload, usage=self._usage(response, prompt, content))

    def _usage(self, response: Any, prompt: PromptBundle, content: str) -> UsageReport:
        metadata = getattr(response, "usage_metadata", None)
        total = getattr(metadata, "total_token_count", None)
        if isinstance(total, int) and total >= 0:
            return UsageReport.for_provider(
                self.name, total, cost_for_tokens(self.model, total)
            )
        return estimate_provider_usage(self.name, self.model, prompt.text, content)
