"""
Snapshot Collector

Fetches the current funding rates from every configured exchange for one
cycle. Handles bulk-then-per-symbol fallback and per-exchange retries, and
keeps one exchange's outage from affecting the others.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from exchange_adapters.base_funding_adapter import BaseFundingAdapter
from exchange_adapters.base_models import FundingObservation
from funding_aggregator.collection.retry import exchange_retrying
from funding_aggregator.utils.logger import logger


@dataclass
class CollectionResult:
    """Observations gathered in one cycle plus per-exchange outcome"""
    observations: List[FundingObservation] = field(default_factory=list)
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.observations

    def keyed(self) -> Dict[Tuple[str, str], FundingObservation]:
        """(exchange, symbol) -> observation; later duplicates win"""
        return {observation.key: observation for observation in self.observations}

    def summary(self) -> Dict[str, object]:
        return {
            'total_exchanges': len(self.succeeded) + len(self.failed),
            'successful': len(self.succeeded),
            'failed': len(self.failed),
            'total_rates': len(self.observations),
            'failed_exchanges': dict(self.failed),
            'duration_seconds': self.duration_seconds,
        }


class SnapshotCollector:
    """
    Collects current funding rates across exchanges

    Per exchange:
    1. Bulk fetch when the adapter supports it (null rates dropped)
    2. Per-symbol fallback over contract symbols when bulk fails or is missing
    3. Whole-exchange retry up to ``max_attempts``; then the exchange is skipped

    Usage:
        collector = SnapshotCollector(max_attempts=2)
        result = await collector.collect(adapters, log=cycle_logger)
    """

    def __init__(
        self,
        max_attempts: int = 2,
        retry_wait_seconds: float = 1.0,
        parallel: bool = False,
    ):
        """
        Args:
            max_attempts: Attempts per exchange before it is skipped for the cycle
            retry_wait_seconds: Delay between attempts
            parallel: Gather exchanges concurrently instead of one after another
        """
        self.max_attempts = max_attempts
        self.retry_wait_seconds = retry_wait_seconds
        self.parallel = parallel

    async def collect(
        self,
        adapters: Sequence[BaseFundingAdapter],
        log=None,
    ) -> CollectionResult:
        """
        Collect funding rates from all adapters

        Never raises for exchange-level failures; they are reported in
        ``CollectionResult.failed``.
        """
        log = log or logger
        result = CollectionResult()

        if not adapters:
            log.warning("No adapters configured")
            return result

        log.info(f"Starting snapshot collection from {len(adapters)} exchanges...")
        start_time = datetime.now(timezone.utc)

        if self.parallel:
            outcomes = await asyncio.gather(
                *(self._collect_guarded(adapter, log) for adapter in adapters)
            )
        else:
            outcomes = [await self._collect_guarded(adapter, log) for adapter in adapters]

        for adapter, (observations, error) in zip(adapters, outcomes):
            if error is not None:
                result.failed[adapter.exchange_id] = error
            else:
                result.succeeded.append(adapter.exchange_id)
                result.observations.extend(observations)

        result.duration_seconds = (datetime.now(timezone.utc) - start_time).total_seconds()

        log.info(
            f"Snapshot collection complete: {len(result.succeeded)}/{len(adapters)} "
            f"exchanges successful, {len(result.observations)} rates in {result.duration_seconds:.2f}s"
        )
        if result.failed:
            log.warning(f"⚠️  {len(result.failed)} exchange(s) skipped: {sorted(result.failed)}")

        return result

    async def _collect_guarded(
        self,
        adapter: BaseFundingAdapter,
        log,
    ) -> Tuple[List[FundingObservation], Optional[str]]:
        exchange_log = log.with_context(exchange=adapter.exchange_id)
        try:
            observations = await self.collect_exchange(adapter, exchange_log)
        except Exception as e:
            exchange_log.error(
                f"❌ Collection failed after {self.max_attempts} attempt(s), skipped this cycle: {e}"
            )
            return [], str(e)

        exchange_log.info(f"✅ Collected {len(observations)} rates")
        return observations, None

    async def collect_exchange(
        self,
        adapter: BaseFundingAdapter,
        log=None,
    ) -> List[FundingObservation]:
        """
        Collect one exchange with retries

        Raises:
            AdapterError: The last error once every attempt has failed
        """
        log = log or logger
        async for attempt in exchange_retrying(self.max_attempts, self.retry_wait_seconds, log):
            with attempt:
                observations = await self._fetch_once(adapter, log)
        return observations

    async def _fetch_once(
        self,
        adapter: BaseFundingAdapter,
        log,
    ) -> List[FundingObservation]:
        await adapter.load_markets()

        if adapter.supports_bulk_funding_rates():
            try:
                rates = await adapter.fetch_bulk_funding_rates()
            except Exception as e:
                log.warning(f"Bulk funding fetch failed, falling back to per-symbol: {e}")
            else:
                return [
                    observation for observation in rates.values()
                    if observation.funding_rate is not None
                ]

        return await self._fetch_per_symbol(adapter, log)

    async def _fetch_per_symbol(
        self,
        adapter: BaseFundingAdapter,
        log,
    ) -> List[FundingObservation]:
        symbols = adapter.list_contract_symbols()
        observations = []
        failed_symbols = 0

        for symbol in symbols:
            try:
                observation = await adapter.fetch_funding_rate(symbol)
            except Exception as e:
                # A single symbol must not abort the exchange
                failed_symbols += 1
                log.debug(f"{symbol}: funding fetch failed: {e}")
                continue

            if observation.funding_rate is not None:
                observations.append(observation)

        log.info(
            f"Per-symbol fetch: {len(observations)}/{len(symbols)} symbols "
            f"({failed_symbols} failed)"
        )
        return observations
