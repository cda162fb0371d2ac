"""
Core aggregation logic: window averages, merging and cell rendering
"""

from funding_aggregator.core.history_aggregator import (
    HistoryAggregator,
    HistoryFetchError,
    average_windows,
)
from funding_aggregator.core.merger import merge_records

__all__ = [
    "HistoryAggregator",
    "HistoryFetchError",
    "average_windows",
    "merge_records",
]
