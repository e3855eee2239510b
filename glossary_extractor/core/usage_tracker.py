"""Token and cost accounting for extraction runs.

Every model call is recorded under the run that made it (one file going
through the extractor) and the purpose it served (terms, rules, chat).
When a run ends its calls are popped as a RunUsage and travel with the
ExtractionResult; the background processor stores the totals on the upload
row, the CLI writes them next to the extracted terms.

Calls made outside a run (chat, ad-hoc calls) stay in the tracker until
``pop_run(None)`` collects them.
"""

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from litellm import completion_cost

from glossary_extractor.pydantic_models.glossary_models import RunUsage, UsageTotals

logger = logging.getLogger(__name__)

# USD per 1M tokens (input, output), used when litellm has no price.
_FALLBACK_PRICING: dict[str, tuple[float, float]] = {
    "gemini-2.0-flash": (0.10, 0.40),
    "gemini-1.5-flash": (0.075, 0.30),
    "gemini-1.5-pro": (1.25, 5.00),
    "openai/gpt-4o": (2.50, 10.00),
    "openai/gpt-4o-mini": (0.15, 0.60),
    "gpt-4o-mini": (0.15, 0.60),
}

_ROUTING_PREFIXES = ("openrouter/", "gemini/", "azure/")

_unpriced_models: set[str] = set()


def pricing_key(model: str) -> str:
    """Model name as it appears in the fallback table.

    'openrouter/openai/gpt-4o-mini' -> 'openai/gpt-4o-mini',
    'gemini/gemini-2.0-flash' -> 'gemini-2.0-flash'.
    """
    for prefix in _ROUTING_PREFIXES:
        if model.startswith(prefix):
            return model[len(prefix):]
    return model


def estimate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """USD cost of one call: litellm's price list, then the fallback table, else 0."""
    if not prompt_tokens and not completion_tokens:
        return 0.0
    try:
        return float(completion_cost(
            model=model, prompt_tokens=prompt_tokens, completion_tokens=completion_tokens,
        ))
    except Exception as e:
        logger.debug("litellm has no price for %s: %s", model, e)

    rates = _FALLBACK_PRICING.get(pricing_key(model))
    if rates is None:
        if model not in _unpriced_models:
            _unpriced_models.add(model)
            logger.warning("No pricing available for model '%s', cost recorded as $0", model)
        return 0.0
    input_rate, output_rate = rates
    return (prompt_tokens * input_rate + completion_tokens * output_rate) / 1_000_000


@dataclass(frozen=True)
class CallUsage:
    """One recorded model call."""

    run_id: str | None
    purpose: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    cost_usd: float


def summarize(calls: Iterable[CallUsage]) -> RunUsage:
    """Fold calls into totals with a per-purpose breakdown."""
    usage = RunUsage()
    for call in calls:
        bucket = usage.by_purpose.setdefault(call.purpose or "unknown", UsageTotals())
        for totals in (usage, bucket):
            totals.calls += 1
            totals.prompt_tokens += call.prompt_tokens
            totals.completion_tokens += call.completion_tokens
            totals.cost_usd += call.cost_usd
    return usage


class UsageTracker:
    """Collects call usage per run. Safe to share between concurrent runs."""

    def __init__(self) -> None:
        self._calls: list[CallUsage] = []
        self._lock = threading.Lock()

    def record(
        self,
        model: str,
        usage: Any,
        purpose: str = "",
        run_id: str | None = None,
    ) -> CallUsage | None:
        """Record the ``usage`` object of a litellm response.

        Returns:
            The stored call, or None when the response carried no usage.
        """
        if usage is None:
            return None

        prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
        completion_tokens = getattr(usage, "completion_tokens", 0) or 0
        call = CallUsage(
            run_id=run_id,
            purpose=purpose,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost_usd=estimate_cost(model, prompt_tokens, completion_tokens),
        )
        with self._lock:
            self._calls.append(call)
        return call

    def usage_for(self, run_id: str | None) -> RunUsage:
        """Usage of one run, left in the tracker."""
        with self._lock:
            calls = [c for c in self._calls if c.run_id == run_id]
        return summarize(calls)

    def pop_run(self, run_id: str | None) -> RunUsage:
        """Usage of one run, removed from the tracker."""
        with self._lock:
            calls = [c for c in self._calls if c.run_id == run_id]
            self._calls = [c for c in self._calls if c.run_id != run_id]
        if calls:
            logger.debug("Run %s used %d calls", run_id, len(calls))
        return summarize(calls)

    def pending_runs(self) -> set[str | None]:
        """Runs with calls not yet popped."""
        with self._lock:
            return {c.run_id for c in self._calls}
