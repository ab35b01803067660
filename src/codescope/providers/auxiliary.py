"""Flat-fee auxiliary analysis services (performance profiler, refactoring optimizer)."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from codescope.client.transport import HTTPTransport
from codescope.constants import (
    AUXILIARY_PROVIDER,
    AUXILIARY_SERVICE_FEES,
    DEFAULT_AUXILIARY_BASE_URL,
    NETWORK_TIMEOUT,
)
from codescope.core.exceptions import MalformedResponseError
from codescope.core.models import PerformanceInsight, RefactoringSuggestion
from codescope.core.types import CapabilityResult, Success, UsageReport
from codescope.credentials import CredentialStore

from .base import capability_boundary

logger = logging.getLogger(__name__)

PERFORMANCE_SERVICE = "performance_profiler"
REFACTORING_SERVICE = "refactoring_optimizer"


class AuxiliaryServiceProvider:
    """Calls ``/profile`` and ``/refactor`` on an analysis service host.

    Usage is never metered: each successful call records the service's flat
    fee under ``UsageReport.auxiliary``. A credential is sent when the store
    has one; the services do not require it.
    """

    def __init__(
        self,
        credentials: CredentialStore | None = None,
        *,
        name: str = AUXILIARY_PROVIDER,
        base_url: str = DEFAULT_AUXILIARY_BASE_URL,
        timeout: float = NETWORK_TIMEOUT,
        fees: dict[str, float] | None = None,
        transport: HTTPTransport | None = None,
    ):
        self.name = name
        self._credentials = credentials
        self._fees = dict(AUXILIARY_SERVICE_FEES if fees is None else fees)
        self._transport = transport or HTTPTransport(
            base_url, timeout=timeout, provider=name
        )

    def __repr__(self) -> str:
        return f"AuxiliaryServiceProvider(name={self.name!r})"

    async def profile_performance(
        self, text: str, language: str, instruction: str  # noqa: ARG002
    ) -> CapabilityResult:
        return await capability_boundary(
            self._call(
                "/profile",
                "insights",
                PerformanceInsight,
                PERFORMANCE_SERVICE,
                text,
                language,
            )
        )

    async def suggest_refactoring(
        self, text: str, language: str, instruction: str  # noqa: ARG002
    ) -> CapabilityResult:
        return await capability_boundary(
            self._call(
                "/refactor",
                "suggestions",
                RefactoringSuggestion,
                REFACTORING_SERVICE,
                text,
                language,
            )
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def _call(
        self,
        path: str,
        key: str,
        model: type[BaseModel],
        service: str,
        text: str,
        language: str,
    ) -> Success:
        credential = self._credentials.get_credential(self.name) if self._credentials else None
        data = await self._transport.post_json(
            path, {"code": text, "language": language}, credential=credential
        )
        items = self._validate_items(data, key, model, path)
        fee = self._fees.get(service, 0.0)
        return Success(payload=items, usage=UsageReport.for_auxiliary(service, fee))

    def _validate_items(
        self, data: dict[str, Any], key: str, model: type[BaseModel], path: str
    ) -> tuple[Any, ...]:
        raw = data.get(key)
        if not isinstance(raw, list):
            raise MalformedResponseError(
                f"Response from {path} has no '{key}' list", provider=self.name
            )
        try:
            return tuple(model.model_validate(item) for item in raw)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Invalid item in '{key}' from {path}: {e.error_count()} error(s)",
                provider=self.name,
            ) from e
