"""
Combined Funding Task

Aggregates trailing funding history, collects live snapshots from the same
exchanges, merges both and rewrites the combined table.
"""

from typing import Any, Dict, Optional, Sequence

from exchange_adapters import AdapterFactory, ExchangeConfig

from funding_aggregator.collection import SnapshotCollector
from funding_aggregator.config import settings
from funding_aggregator.core import HistoryAggregator, merge_records
from funding_aggregator.output import TableWriter, combined_table
from funding_aggregator.tasks.base_task import BaseTask
from funding_aggregator.tasks.matrix_task import AdapterBuilder, close_adapters


class CombinedFundingTask(BaseTask):
    """
    Background task for the combined history + live table

    History and live data share one set of adapters per cycle, so markets
    are loaded once per exchange.
    """

    def __init__(
        self,
        exchanges: Optional[Sequence[ExchangeConfig]] = None,
        writer: Optional[TableWriter] = None,
        aggregator: Optional[HistoryAggregator] = None,
        collector: Optional[SnapshotCollector] = None,
        adapter_factory: Optional[AdapterBuilder] = None,
        display_timezone: Optional[str] = None,
    ):
        super().__init__("combined_funding")
        self.exchanges = list(
            exchanges if exchanges is not None
            else settings.active_exchanges(settings.combined_exchanges)
        )
        self.writer = writer or TableWriter(settings.combined_table_path)
        self.aggregator = aggregator or HistoryAggregator(
            max_attempts=settings.exchange_max_attempts,
            retry_wait_seconds=settings.retry_wait_seconds,
        )
        self.collector = collector or SnapshotCollector(
            max_attempts=settings.exchange_max_attempts,
            retry_wait_seconds=settings.retry_wait_seconds,
            parallel=settings.parallel_exchanges,
        )
        self.adapter_factory = adapter_factory or AdapterFactory.create_adapters
        self.display_timezone = display_timezone or settings.display_timezone

    async def execute(self, log) -> Dict[str, Any]:
        adapters = self.adapter_factory(self.exchanges, settings.request_timeout_ms)

        try:
            histories = await self.aggregator.aggregate(adapters, log=log)
            live = await self.collector.collect(adapters, log=log)
        finally:
            await close_adapters(adapters, log)

        records = merge_records(histories, live.observations)
        summary: Dict[str, Any] = {
            'history_rows': len(histories),
            'live_rates': len(live.observations),
            'failed_exchanges': dict(live.failed),
            'records': len(records),
        }

        if not records:
            log.warning(f"No combined records, keeping existing {self.writer.path}")
            summary.update(written=False, reason="no_data")
            return summary

        header, rows = combined_table(records, self.display_timezone)
        bytes_written = self.writer.write(header, rows)
        log.info(f"💾 Wrote {len(rows)} rows to {self.writer.path} ({bytes_written} bytes)")

        summary.update(written=True, rows=len(rows), path=str(self.writer.path))
        return summary
