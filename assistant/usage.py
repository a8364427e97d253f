"""Token usage and cost accounting."""

import logging
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelPricing:
    """USD rates per million tokens."""

    input_per_million: float
    output_per_million: float


DEFAULT_PRICE_TABLE: Mapping[str, ModelPricing] = MappingProxyType({
    "claude-haiku-4-5-20251001": ModelPricing(0.80, 4.00),
    "claude-sonnet-4-5-20250929": ModelPricing(3.00, 15.00),
    "claude-opus-4-1-20250805": ModelPricing(15.00, 75.00),
})

_FREE = ModelPricing(0.0, 0.0)


def estimate_cost(input_tokens: int, output_tokens: int, pricing: ModelPricing) -> float:
    """Return the estimated USD cost of one request."""
    return (
        input_tokens / 1_000_000 * pricing.input_per_million
        + output_tokens / 1_000_000 * pricing.output_per_million
    )


def build_price_table(pricing_config: dict | None) -> Mapping[str, ModelPricing]:
    """Merge the ``pricing`` config section over the default table.

    Each entry maps a model id to ``{"input_per_million": .., "output_per_million": ..}``.
    Malformed entries are skipped with a warning.
    """
    table = dict(DEFAULT_PRICE_TABLE)
    for model, rates in (pricing_config or {}).items():
        try:
            table[model] = ModelPricing(
                float(rates["input_per_million"]),
                float(rates["output_per_million"]),
            )
        except (KeyError, TypeError, ValueError):
            log.warning("Ignoring malformed pricing entry for %s", model)
    return MappingProxyType(table)


@dataclass(frozen=True)
class UsageLedger:
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost: float = 0.0
    requests: int = 0

    last_input_tokens: int = 0
    last_output_tokens: int = 0
    last_cost: float = 0.0
    last_requests: int = 0

    compressions: int = 0


class UsageAccountant:
    """Folds per-request token counts into a running ledger for one model."""

    def __init__(self, model: str, price_table: Mapping[str, ModelPricing] = DEFAULT_PRICE_TABLE):
        self._model = model
        pricing = price_table.get(model)
        if pricing is None:
            log.warning("No pricing known for model %s; costs will read as zero", model)
            pricing = _FREE
        self._pricing = pricing
        self._ledger = UsageLedger()

    @property
    def pricing(self) -> ModelPricing:
        return self._pricing

    @property
    def ledger(self) -> UsageLedger:
        return self._ledger

    def record(self, input_tokens: int, output_tokens: int, compression: bool = False) -> float:
        """Account for one completed request and return its cost."""
        cost = estimate_cost(input_tokens, output_tokens, self._pricing)
        current = self._ledger
        # Single assignment so readers never see a half-updated ledger.
        self._ledger = replace(
            current,
            total_input_tokens=current.total_input_tokens + input_tokens,
            total_output_tokens=current.total_output_tokens + output_tokens,
            total_cost=current.total_cost + cost,
            requests=current.requests + 1,
            last_input_tokens=input_tokens,
            last_output_tokens=output_tokens,
            last_cost=cost,
            last_requests=1,
            compressions=current.compressions + (1 if compression else 0),
        )
        return cost

    def reset(self) -> None:
        self._ledger = UsageLedger()


def format_usage(ledger: UsageLedger) -> str:
    """Render a ledger the way the CLI prints it."""
    return "\n".join([
        f"Requests:      {ledger.requests}",
        f"Compressions:  {ledger.compressions}",
        f"Input tokens:  {ledger.total_input_tokens}",
        f"Output tokens: {ledger.total_output_tokens}",
        f"Total cost:    ${ledger.total_cost:.6f}",
        f"Last request:  in={ledger.last_input_tokens} out={ledger.last_output_tokens} "
        f"cost=${ledger.last_cost:.6f}",
    ])
