import pytest

from assistant.usage import (
    DEFAULT_PRICE_TABLE,
    ModelPricing,
    UsageAccountant,
    UsageLedger,
    build_price_table,
    estimate_cost,
    format_usage,
)

HAIKU = "claude-haiku-4-5-20251001"


def test_estimate_cost_uses_per_million_rates() -> None:
    cost = estimate_cost(1_000_000, 500_000, ModelPricing(0.80, 4.00))

    assert cost == pytest.approx(0.80 + 2.00)


def test_estimate_cost_keeps_sub_cent_precision() -> None:
    cost = estimate_cost(100, 20, DEFAULT_PRICE_TABLE[HAIKU])

    assert f"{cost:.6f}" == "0.000160"


def test_record_updates_totals_and_last_fields() -> None:
    accountant = UsageAccountant(HAIKU)

    accountant.record(100, 20)
    accountant.record(300, 40)
    ledger = accountant.ledger

    assert ledger.requests == 2
    assert ledger.total_input_tokens == 400
    assert ledger.total_output_tokens == 60
    assert ledger.last_input_tokens == 300
    assert ledger.last_output_tokens == 40
    assert ledger.last_cost == pytest.approx(estimate_cost(300, 40, DEFAULT_PRICE_TABLE[HAIKU]))
    assert ledger.total_cost == pytest.approx(estimate_cost(400, 60, DEFAULT_PRICE_TABLE[HAIKU]))
    assert ledger.compressions == 0


def test_compression_record_counts_request_and_compression() -> None:
    accountant = UsageAccountant(HAIKU)

    accountant.record(50, 10, compression=True)

    assert accountant.ledger.requests == 1
    assert accountant.ledger.compressions == 1


def test_snapshot_is_not_changed_by_later_records() -> None:
    accountant = UsageAccountant(HAIKU)
    accountant.record(10, 10)
    snapshot = accountant.ledger

    accountant.record(10, 10)

    assert snapshot.requests == 1
    assert accountant.ledger.requests == 2


def test_reset_zeroes_ledger() -> None:
    accountant = UsageAccountant(HAIKU)
    accountant.record(10, 10, compression=True)

    accountant.reset()

    assert accountant.ledger == UsageLedger()


def test_unknown_model_costs_nothing() -> None:
    accountant = UsageAccountant("some-local-model")

    assert accountant.record(1000, 1000) == 0.0
    assert accountant.ledger.requests == 1


def test_price_table_merges_config_and_skips_bad_entries() -> None:
    table = build_price_table({
        "my-model": {"input_per_million": "1.5", "output_per_million": 2},
        "broken": {"input_per_million": 1},
    })

    assert table["my-model"] == ModelPricing(1.5, 2.0)
    assert "broken" not in table
    assert table[HAIKU] == DEFAULT_PRICE_TABLE[HAIKU]
    with pytest.raises(TypeError):
        table["other"] = ModelPricing(0, 0)


def test_format_usage_shows_six_decimals() -> None:
    text = format_usage(UsageLedger(requests=3, total_cost=0.00016, compressions=1))

    assert "Requests:      3" in text
    assert "Compressions:  1" in text
    assert "$0.000160" in text
