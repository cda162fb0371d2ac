"""
Tests for the matrix and combined cycles end to end with fake adapters.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from exchange_adapters import ExchangeConfig, FundingObservation, NetworkError
from funding_aggregator.collection import SnapshotCollector
from funding_aggregator.core import HistoryAggregator
from funding_aggregator.output import TableWriter, WriteError, read_table
from funding_aggregator.tasks import CombinedFundingTask, FundingMatrixTask
from conftest import FakeFundingAdapter


def factory_for(*adapters):
    def build(configs, timeout_ms):
        return list(adapters)
    return build


def matrix_task(tmp_path, *adapters, exchanges=("binance", "bybit")):
    return FundingMatrixTask(
        exchanges=[ExchangeConfig(id=exchange) for exchange in exchanges],
        writer=TableWriter(tmp_path / "all_funding_rates.csv"),
        collector=SnapshotCollector(max_attempts=2, retry_wait_seconds=0),
        adapter_factory=factory_for(*adapters),
    )


class BlockingAdapter(FakeFundingAdapter):
    """Holds load_markets open until released."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def load_markets(self) -> None:
        self.entered.set()
        await self.release.wait()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_matrix_cycle_writes_table_and_closes_adapters(tmp_path):
    binance = FakeFundingAdapter("binance", rates={"BTC/USDT:USDT": "0.0001"})
    bybit = FakeFundingAdapter("bybit", rates={"BTC/USDT:USDT": "0.00015", "ETH/USDT:USDT": "0.0002"})
    task = matrix_task(tmp_path, binance, bybit)

    result = await task.run()

    assert result["status"] == "success"
    assert result["result"]["written"] is True
    assert (tmp_path / "all_funding_rates.csv").read_text(encoding="utf-8") == (
        "symbol,binance,bybit\n"
        "BTC/USDT:USDT,0.01,0.02\n"
        "ETH/USDT:USDT,,0.02\n"
    )
    assert binance.closed and bybit.closed


@pytest.mark.unit
@pytest.mark.asyncio
async def test_matrix_cycle_without_data_leaves_file_untouched(tmp_path):
    path = tmp_path / "all_funding_rates.csv"
    path.write_bytes(b"symbol,binance\nBTC/USDT:USDT,0.01\n")
    down = FakeFundingAdapter("binance", load_failures=[NetworkError("down")] * 2)
    task = matrix_task(tmp_path, down, exchanges=("binance",))

    result = await task.run()

    assert result["status"] == "success"
    assert result["result"]["written"] is False
    assert result["result"]["reason"] == "no_data"
    assert path.read_bytes() == b"symbol,binance\nBTC/USDT:USDT,0.01\n"
    assert down.closed


@pytest.mark.unit
@pytest.mark.asyncio
async def test_mixed_case_exchange_id_fills_its_column(tmp_path):
    okx = FakeFundingAdapter("okx", rates={"BTC/USDT:USDT": "0.0001"})
    task = matrix_task(tmp_path, okx, exchanges=(" OKX",))

    result = await task.run()

    assert result["status"] == "success"
    assert (tmp_path / "all_funding_rates.csv").read_text(encoding="utf-8") == (
        "symbol,okx\n"
        "BTC/USDT:USDT,0.01\n"
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_partial_exchange_failure_still_writes(tmp_path):
    down = FakeFundingAdapter("binance", load_failures=[NetworkError("down")] * 2)
    up = FakeFundingAdapter("bybit", rates={"BTC/USDT:USDT": "0.0001"})
    task = matrix_task(tmp_path, down, up)

    result = await task.run()

    assert result["result"]["failed_exchanges"].keys() == {"binance"}
    rows = read_table(tmp_path / "all_funding_rates.csv").rows
    assert rows == [{"symbol": "BTC/USDT:USDT", "binance": "", "bybit": "0.01"}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_overlapping_run_is_skipped(tmp_path):
    adapter = BlockingAdapter("binance", rates={"BTC/USDT:USDT": "0.0001"})
    task = matrix_task(tmp_path, adapter, exchanges=("binance",))

    first = asyncio.create_task(task.run())
    await adapter.entered.wait()

    second = await task.run()
    adapter.release.set()
    first_result = await first

    assert second["status"] == "skipped"
    assert first_result["status"] == "success"
    assert task.metrics.skipped_runs == 1
    assert task.metrics.total_runs == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_write_failure_marks_cycle_failed(tmp_path):
    class FailingWriter(TableWriter):
        def write(self, header, rows):
            raise WriteError(self.path, OSError("read-only file system"))

    task = FundingMatrixTask(
        exchanges=[ExchangeConfig(id="binance")],
        writer=FailingWriter(tmp_path / "all_funding_rates.csv"),
        collector=SnapshotCollector(max_attempts=1, retry_wait_seconds=0),
        adapter_factory=factory_for(FakeFundingAdapter("binance", rates={"BTC/USDT:USDT": "0.0001"})),
    )

    result = await task.run()

    assert result["status"] == "failed"
    assert task.metrics.failed_runs == 1
    assert task.get_metrics()["last_error_message"].startswith("Failed to write")
    assert not task.is_running()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_combined_cycle_merges_history_and_live(tmp_path):
    now = datetime.now(timezone.utc)
    history = [
        FundingObservation(
            exchange="binance",
            symbol="BTC/USDT:USDT",
            funding_rate=Decimal("0.0001"),
            timestamp=now - timedelta(hours=12),
        )
    ]
    binance = FakeFundingAdapter(
        "binance",
        rates={"BTC/USDT:USDT": "0.0002", "NEW/USDT:USDT": "0.0003"},
        histories={"BTC/USDT:USDT": history, "FLAT/USDT:USDT": []},
        mark_price="100",
    )
    task = CombinedFundingTask(
        exchanges=[ExchangeConfig(id="binance")],
        writer=TableWriter(tmp_path / "combined_all_fundingfee.csv"),
        aggregator=HistoryAggregator(max_attempts=1, retry_wait_seconds=0),
        collector=SnapshotCollector(max_attempts=1, retry_wait_seconds=0),
        adapter_factory=factory_for(binance),
        display_timezone="UTC",
    )

    result = await task.run()

    assert result["status"] == "success"
    rows = read_table(tmp_path / "combined_all_fundingfee.csv").rows
    assert [row["symbol"] for row in rows] == ["BTC/USDT:USDT", "NEW/USDT:USDT"]

    btc, new = rows
    assert btc["1d"] == "0.0100"
    assert btc["2d"] == "0.0050"
    assert btc["fundingRate"] == "0.0200"
    assert btc["markPrice"] == "100.0000"
    assert btc["datetime"] == "2024/1/1 08:00:00"
    assert new["1d"] == "" and new["fundingRate"] == "0.0300"
    assert binance.closed


@pytest.mark.unit
@pytest.mark.asyncio
async def test_combined_cycle_without_records_skips_write(tmp_path):
    path = tmp_path / "combined_all_fundingfee.csv"
    path.write_text("previous\n", encoding="utf-8")
    task = CombinedFundingTask(
        exchanges=[ExchangeConfig(id="binance")],
        writer=TableWriter(path),
        aggregator=HistoryAggregator(max_attempts=1, retry_wait_seconds=0),
        collector=SnapshotCollector(max_attempts=1, retry_wait_seconds=0),
        adapter_factory=factory_for(FakeFundingAdapter("binance", histories={"FLAT/USDT:USDT": []})),
    )

    result = await task.run()

    assert result["result"]["written"] is False
    assert path.read_text(encoding="utf-8") == "previous\n"
