"""
Reconciliation Merger

Full outer join of historical window averages and live snapshots, keyed by
(exchange, symbol).
"""

from typing import Dict, Iterable, List, Tuple

from exchange_adapters.base_models import FundingObservation
from funding_aggregator.models.funding_rate import CombinedRecord, FundingHistoryWindow


def _live_fields(observation: FundingObservation) -> Dict[str, object]:
    return {
        "observed_at": observation.timestamp,
        "funding_rate": observation.funding_rate,
        "funding_interval": observation.funding_interval,
        "mark_price": observation.mark_price,
    }


def merge_records(
    histories: Iterable[FundingHistoryWindow],
    observations: Iterable[FundingObservation],
) -> List[CombinedRecord]:
    """
    Combine history rows and live observations into one record per key.

    - History rows whose windows are all zero or missing are dropped first.
    - Every remaining history row survives; live fields stay empty when no
      observation matches.
    - Every live observation survives; unmatched ones become live-only rows
      with empty windows.
    - On a key match live fields are laid over the history row. Repeated live
      keys resolve last-write-wins.

    Returns:
        Records sorted by (exchange, symbol)
    """
    combined: Dict[Tuple[str, str], CombinedRecord] = {}

    for history in histories:
        if not history.has_signal():
            continue
        combined[history.key] = CombinedRecord(
            exchange=history.exchange,
            symbol=history.symbol,
            averages=dict(history.averages),
        )

    for observation in observations:
        existing = combined.get(observation.key)
        if existing is not None:
            combined[observation.key] = existing.model_copy(update=_live_fields(observation))
        else:
            combined[observation.key] = CombinedRecord(
                exchange=observation.exchange,
                symbol=observation.symbol,
                **_live_fields(observation),
            )

    return [combined[key] for key in sorted(combined)]
