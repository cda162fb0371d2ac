"""
Tests for merge_records: outer join, zero-history filter and live precedence.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from exchange_adapters import FundingObservation
from funding_aggregator.core import merge_records
from funding_aggregator.models import FundingHistoryWindow


def window(exchange, symbol, value):
    return FundingHistoryWindow(
        exchange=exchange,
        symbol=symbol,
        averages={days: Decimal(value) for days in (1, 2, 3, 5, 7)},
    )


def live(exchange, symbol, rate, mark="100"):
    return FundingObservation(
        exchange=exchange,
        symbol=symbol,
        funding_rate=Decimal(rate),
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        mark_price=Decimal(mark),
        funding_interval="8h",
    )


@pytest.mark.unit
def test_full_outer_join():
    records = merge_records(
        [window("binance", "BTC", "0.0001"), window("binance", "ETH", "0.0002")],
        [live("binance", "BTC", "0.0003"), live("bybit", "SOL", "0.0004")],
    )

    by_key = {record.key: record for record in records}
    assert set(by_key) == {("binance", "BTC"), ("binance", "ETH"), ("bybit", "SOL")}

    both = by_key[("binance", "BTC")]
    assert both.averages[1] == Decimal("0.0001")
    assert both.funding_rate == Decimal("0.0003")

    history_only = by_key[("binance", "ETH")]
    assert history_only.funding_rate is None
    assert history_only.observed_at is None

    live_only = by_key[("bybit", "SOL")]
    assert live_only.averages == {}
    assert live_only.mark_price == Decimal("100")


@pytest.mark.unit
def test_all_zero_or_missing_history_is_dropped_before_join():
    records = merge_records(
        [
            window("binance", "ZERO", "0"),
            FundingHistoryWindow.missing("binance", "FAILED"),
        ],
        [live("binance", "FAILED", "0.0001")],
    )

    assert [record.key for record in records] == [("binance", "FAILED")]
    assert records[0].averages == {}


@pytest.mark.unit
def test_partially_zero_history_is_kept():
    history = FundingHistoryWindow(
        exchange="gate",
        symbol="BTC",
        averages={1: Decimal("0"), 2: Decimal("0"), 3: Decimal("0"), 5: Decimal("0"), 7: Decimal("0.00001")},
    )

    assert [record.key for record in merge_records([history], [])] == [("gate", "BTC")]


@pytest.mark.unit
def test_repeated_live_key_last_write_wins():
    records = merge_records([], [live("binance", "BTC", "0.0001"), live("binance", "BTC", "0.0005")])

    assert len(records) == 1
    assert records[0].funding_rate == Decimal("0.0005")


@pytest.mark.unit
def test_records_sorted_by_exchange_then_symbol():
    records = merge_records(
        [window("bybit", "AAA", "0.0001"), window("binance", "ZZZ", "0.0001")],
        [live("binance", "AAA", "0.0001")],
    )

    assert [record.key for record in records] == [
        ("binance", "AAA"),
        ("binance", "ZZZ"),
        ("bybit", "AAA"),
    ]
