"""
Tests for reading persisted tables back.
"""

import pytest

from funding_aggregator.output import TableUnavailableError, TableWriter, read_table


@pytest.mark.unit
def test_round_trip_with_quoted_cells(tmp_path):
    path = tmp_path / "combined.csv"
    TableWriter(path).write(["exchange", "symbol", "1d"], [["binance", "A,B", "0.0100"], ["bybit", "ETH", ""]])

    snapshot = read_table(path)

    assert snapshot.columns == ["exchange", "symbol", "1d"]
    assert snapshot.rows == [
        {"exchange": "binance", "symbol": "A,B", "1d": "0.0100"},
        {"exchange": "bybit", "symbol": "ETH", "1d": ""},
    ]


@pytest.mark.unit
def test_header_only_table_has_no_rows(tmp_path):
    path = tmp_path / "matrix.csv"
    TableWriter(path).write(["symbol", "binance"], [])

    assert read_table(path).rows == []


@pytest.mark.unit
def test_missing_file_is_unavailable(tmp_path):
    with pytest.raises(TableUnavailableError) as exc_info:
        read_table(tmp_path / "nope.csv")

    assert exc_info.value.reason == "not found"


@pytest.mark.unit
def test_empty_file_is_unavailable(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")

    with pytest.raises(TableUnavailableError):
        read_table(path)
