"""
History Aggregator

Reduces each symbol's recent funding history into average daily rates over
several trailing windows (1, 2, 3, 5 and 7 days).
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from exchange_adapters.base_funding_adapter import BaseFundingAdapter
from exchange_adapters.base_models import FundingObservation
from funding_aggregator.collection.retry import exchange_retrying
from funding_aggregator.models.funding_rate import WINDOW_DAYS, FundingHistoryWindow
from funding_aggregator.utils.logger import logger


class HistoryFetchError(Exception):
    """Raised when a symbol's funding history could not be fetched"""

    def __init__(self, exchange: str, symbol: str, cause: Exception):
        super().__init__(f"{exchange} {symbol}: history fetch failed: {cause}")
        self.exchange = exchange
        self.symbol = symbol
        self.cause = cause


def average_windows(
    history: Iterable[FundingObservation],
    now: datetime,
    window_days: Sequence[int] = WINDOW_DAYS,
) -> Dict[int, Decimal]:
    """
    Average daily funding rate for each trailing window.

    For a window of ``d`` days the result is the sum of every rate stamped at
    or after ``now - d days``, divided by ``d``. It is a per-day
    normalisation, not a sample mean: an empty window yields 0.

    Entries without a timestamp or a rate are ignored.
    """
    dated = [
        (entry.timestamp, entry.funding_rate)
        for entry in history
        if entry.timestamp is not None and entry.funding_rate is not None
    ]

    averages = {}
    for days in window_days:
        since = now - timedelta(days=days)
        total = sum((rate for timestamp, rate in dated if timestamp >= since), Decimal("0"))
        averages[days] = total / Decimal(days)
    return averages


class HistoryAggregator:
    """
    Compute FundingHistoryWindow rows for every contract symbol of each exchange

    One history request per symbol, covering the longest window; every
    shorter window is derived from that single response.
    """

    def __init__(
        self,
        window_days: Sequence[int] = WINDOW_DAYS,
        max_attempts: int = 2,
        retry_wait_seconds: float = 1.0,
    ):
        """
        Args:
            window_days: Trailing window lengths in days
            max_attempts: Attempts at loading an exchange's markets
            retry_wait_seconds: Delay between those attempts
        """
        self.window_days = tuple(window_days)
        self.lookback_days = max(self.window_days)
        self.max_attempts = max_attempts
        self.retry_wait_seconds = retry_wait_seconds

    async def aggregate(
        self,
        adapters: Sequence[BaseFundingAdapter],
        log=None,
        now: Optional[datetime] = None,
    ) -> List[FundingHistoryWindow]:
        """
        Aggregate history across exchanges, one exchange at a time

        Args:
            adapters: Exchange adapters (markets are loaded here if needed)
            log: Cycle-scoped logger; every message goes through it
            now: Reference instant for the windows (default: current UTC time)
        """
        log = log or logger
        now = now or datetime.now(timezone.utc)

        windows: List[FundingHistoryWindow] = []
        for adapter in adapters:
            exchange_log = log.with_context(exchange=adapter.exchange_id)
            try:
                exchange_windows = await self.aggregate_exchange(adapter, exchange_log, now)
            except Exception as e:
                exchange_log.error(f"❌ History aggregation failed, skipped this cycle: {e}")
                continue
            windows.extend(exchange_windows)

        log.info(f"History aggregation complete: {len(windows)} symbol rows")
        return windows

    async def aggregate_exchange(
        self,
        adapter: BaseFundingAdapter,
        log=None,
        now: Optional[datetime] = None,
    ) -> List[FundingHistoryWindow]:
        """
        Aggregate every contract symbol of one exchange

        Raises:
            AdapterError: If the exchange's markets can't be loaded after retries
        """
        log = log or logger
        now = now or datetime.now(timezone.utc)

        async for attempt in exchange_retrying(self.max_attempts, self.retry_wait_seconds, log):
            with attempt:
                await adapter.load_markets()

        symbols = adapter.list_contract_symbols()
        log.info(f"Aggregating {self.lookback_days}d funding history for {len(symbols)} symbols")

        windows = []
        failed = 0
        for symbol in symbols:
            try:
                history = await self._fetch_history(adapter, symbol, now)
            except HistoryFetchError as e:
                failed += 1
                log.debug(str(e))
                windows.append(
                    FundingHistoryWindow.missing(adapter.exchange_id, symbol, self.window_days)
                )
                continue

            windows.append(
                FundingHistoryWindow(
                    exchange=adapter.exchange_id,
                    symbol=symbol,
                    averages=average_windows(history, now, self.window_days),
                )
            )

        if failed:
            log.warning(f"History unavailable for {failed}/{len(symbols)} symbols")
        return windows

    async def _fetch_history(
        self,
        adapter: BaseFundingAdapter,
        symbol: str,
        now: datetime,
    ) -> List[FundingObservation]:
        since = now - timedelta(days=self.lookback_days)
        try:
            return await adapter.fetch_funding_rate_history(symbol, since)
        except Exception as e:
            # ccxt response parsers can fail with plain TypeError/KeyError
            raise HistoryFetchError(adapter.exchange_id, symbol, e) from e
