"""Pytest configuration and shared fakes for the funding aggregator tests."""

import os
import sys
import tempfile
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Keep log files out of the working tree
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="funding_aggregator_logs_"))

pytest_plugins = ["pytest_asyncio"]

from exchange_adapters.base_funding_adapter import BaseFundingAdapter  # noqa: E402
from exchange_adapters.base_models import (  # noqa: E402
    FundingObservation,
    UnsupportedOperationError,
)
from funding_aggregator.tasks.base_task import BaseTask  # noqa: E402


class RecordingLogger:
    """Stand-in for UnifiedLogger that keeps every message with its context."""

    def __init__(self, context: Optional[Dict[str, str]] = None, records: Optional[list] = None):
        self.context = context or {}
        self.records = records if records is not None else []

    def _log(self, level: str, message: str) -> None:
        self.records.append((level, message, dict(self.context)))

    def debug(self, message, **kwargs):
        self._log("DEBUG", message)

    def info(self, message, **kwargs):
        self._log("INFO", message)

    def warning(self, message, **kwargs):
        self._log("WARNING", message)

    def error(self, message, **kwargs):
        self._log("ERROR", message)

    def exception(self, message, **kwargs):
        self._log("ERROR", message)

    def with_context(self, **context) -> "RecordingLogger":
        return RecordingLogger({**self.context, **context}, self.records)

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [message for lvl, message, _ in self.records if level is None or lvl == level]


class FakeFundingAdapter(BaseFundingAdapter):
    """
    In-memory adapter.

    ``load_failures`` / ``bulk_failures`` are exceptions raised by successive
    calls before the call starts succeeding.
    """

    def __init__(
        self,
        exchange_id: str,
        rates: Optional[Dict[str, Optional[str]]] = None,
        bulk: bool = True,
        histories: Optional[Dict[str, List[FundingObservation]]] = None,
        history_errors: Optional[Dict[str, Exception]] = None,
        symbol_errors: Optional[Dict[str, Exception]] = None,
        load_failures: Optional[List[Exception]] = None,
        bulk_failures: Optional[List[Exception]] = None,
        mark_price: Optional[str] = None,
    ):
        super().__init__(exchange_id)
        self.rates = rates or {}
        self.bulk = bulk
        self.histories = histories or {}
        self.history_errors = history_errors or {}
        self.symbol_errors = symbol_errors or {}
        self.load_failures = list(load_failures or [])
        self.bulk_failures = list(bulk_failures or [])
        self.mark_price = Decimal(mark_price) if mark_price else None
        self.timestamp = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

        self.load_calls = 0
        self.bulk_calls = 0
        self.symbol_calls: List[str] = []
        self.history_calls: List[str] = []
        self.closed = False

    def _observation(self, symbol: str) -> FundingObservation:
        rate = self.rates[symbol]
        return FundingObservation(
            exchange=self.exchange_id,
            symbol=symbol,
            funding_rate=Decimal(rate) if rate is not None else None,
            timestamp=self.timestamp,
            mark_price=self.mark_price,
        )

    async def load_markets(self) -> None:
        self.load_calls += 1
        if self.load_failures:
            raise self.load_failures.pop(0)

    def list_contract_symbols(self) -> List[str]:
        return sorted(set(self.rates) | set(self.histories) | set(self.history_errors))

    def supports_bulk_funding_rates(self) -> bool:
        return self.bulk

    async def fetch_bulk_funding_rates(self, symbols=None) -> Dict[str, FundingObservation]:
        self.bulk_calls += 1
        if not self.bulk:
            raise UnsupportedOperationError("no bulk endpoint", exchange=self.exchange_id)
        if self.bulk_failures:
            raise self.bulk_failures.pop(0)
        return {symbol: self._observation(symbol) for symbol in self.rates}

    async def fetch_funding_rate(self, symbol: str) -> FundingObservation:
        self.symbol_calls.append(symbol)
        if symbol in self.symbol_errors:
            raise self.symbol_errors[symbol]
        return self._observation(symbol)

    async def fetch_funding_rate_history(self, symbol: str, since: datetime) -> List[FundingObservation]:
        self.history_calls.append(symbol)
        if symbol in self.history_errors:
            raise self.history_errors[symbol]
        return list(self.histories.get(symbol, []))

    async def close(self) -> None:
        self.closed = True


class CountingTask(BaseTask):
    """Task that only counts executions, optionally failing each one."""

    def __init__(self, name, fail=False):
        super().__init__(name)
        self.fail = fail
        self.executions = 0

    async def execute(self, log):
        self.executions += 1
        if self.fail:
            raise RuntimeError("boom")
        return {"written": True}


@pytest.fixture
def recording_logger():
    return RecordingLogger()
