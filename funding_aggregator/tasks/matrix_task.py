"""
Funding Matrix Task

Polls the live funding rate of every configured exchange and rewrites the
symbol × exchange percentage matrix.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

from exchange_adapters import AdapterFactory, BaseFundingAdapter, ExchangeConfig

from funding_aggregator.collection import SnapshotCollector
from funding_aggregator.config import settings
from funding_aggregator.output import TableWriter, matrix_table
from funding_aggregator.tasks.base_task import BaseTask


AdapterBuilder = Callable[[Sequence[ExchangeConfig], int], List[BaseFundingAdapter]]


async def close_adapters(adapters: Sequence[BaseFundingAdapter], log) -> None:
    """Release every adapter's connections; a failing close is logged, not raised."""
    for adapter in adapters:
        try:
            await adapter.close()
        except Exception as e:
            log.warning(f"Failed to close {adapter.exchange_id} adapter: {e}")


class FundingMatrixTask(BaseTask):
    """
    Background task for the live funding-rate matrix

    This task:
    1. Creates one adapter per active exchange
    2. Collects live snapshots through SnapshotCollector
    3. Rewrites the matrix table, unless nothing was collected
    4. Closes the adapters
    """

    def __init__(
        self,
        exchanges: Optional[Sequence[ExchangeConfig]] = None,
        writer: Optional[TableWriter] = None,
        collector: Optional[SnapshotCollector] = None,
        adapter_factory: Optional[AdapterBuilder] = None,
    ):
        super().__init__("funding_matrix")
        self.exchanges = list(
            exchanges if exchanges is not None
            else settings.active_exchanges(settings.matrix_exchanges)
        )
        self.writer = writer or TableWriter(settings.matrix_table_path)
        self.collector = collector or SnapshotCollector(
            max_attempts=settings.exchange_max_attempts,
            retry_wait_seconds=settings.retry_wait_seconds,
            parallel=settings.parallel_exchanges,
        )
        self.adapter_factory = adapter_factory or AdapterFactory.create_adapters

    async def execute(self, log) -> Dict[str, Any]:
        adapters = self.adapter_factory(self.exchanges, settings.request_timeout_ms)

        try:
            result = await self.collector.collect(adapters, log=log)
        finally:
            await close_adapters(adapters, log)

        summary: Dict[str, Any] = result.summary()

        if result.is_empty:
            log.warning(f"No funding rates collected, keeping existing {self.writer.path}")
            summary.update(written=False, reason="no_data")
            return summary

        exchange_ids = [config.id for config in self.exchanges]
        header, rows = matrix_table(result.observations, exchange_ids)
        bytes_written = self.writer.write(header, rows)
        log.info(f"💾 Wrote {len(rows)} symbols to {self.writer.path} ({bytes_written} bytes)")

        summary.update(written=True, rows=len(rows), path=str(self.writer.path))
        return summary
