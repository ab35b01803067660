"""Usage and cost aggregation."""

from __future__ import annotations

from collections.abc import Iterable

from codescope.constants import CHARS_PER_TOKEN, COST_PER_TOKEN, FALLBACK_COST_PER_TOKEN
from codescope.core.types import ProviderUsage, UsageReport


class CostAggregator:
    """Folds independently obtained usage reports into one.

    ``merge`` is the only operation that mutates a ``UsageReport``. Every
    field it touches is a key-wise sum, so the outcome does not depend on the
    order in which parallel calls completed.
    """

    @staticmethod
    def merge(accumulator: UsageReport, incoming: UsageReport) -> UsageReport:
        """Add ``incoming`` into ``accumulator`` and return the accumulator."""
        accumulator.total_tokens += incoming.total_tokens
        accumulator.total_cost += incoming.total_cost
        for name, usage in incoming.providers.items():
            current = accumulator.providers.get(name)
            accumulator.providers[name] = usage if current is None else current + usage
        for service, fee in incoming.auxiliary.items():
            accumulator.auxiliary[service] = accumulator.auxiliary.get(service, 0.0) + fee
        return accumulator

    @classmethod
    def combine(cls, reports: Iterable[UsageReport | None]) -> UsageReport:
        """Merge ``reports`` (skipping None) into a fresh report."""
        total = UsageReport()
        for report in reports:
            if report is not None:
                cls.merge(total, report)
        return total


def estimate_tokens(text: str) -> int:
    """Rough token count for providers that report no usage."""
    return max(1, len(text) // CHARS_PER_TOKEN) if text else 0


def cost_for_tokens(model: str, tokens: int) -> float:
    """Price ``tokens`` for ``model`` using the per-token table."""
    return tokens * COST_PER_TOKEN.get(model, FALLBACK_COST_PER_TOKEN)


def estimate_provider_usage(
    provider: str, model: str, prompt: str, completion: str
) -> UsageReport:
    """Usage report estimated from prompt and completion text lengths."""
    tokens = estimate_tokens(prompt) + estimate_tokens(completion)
    return UsageReport.for_provider(provider, tokens, cost_for_tokens(model, tokens))


def provider_usage(report: UsageReport, provider: str) -> ProviderUsage:
    """Usage attributed to ``provider`` (zero when absent)."""
    return report.providers.get(provider, ProviderUsage())
