"""
Data models for the funding rate aggregator
"""

from funding_aggregator.models.funding_rate import (
    WINDOW_DAYS,
    CombinedRecord,
    FundingHistoryWindow,
)

__all__ = [
    "WINDOW_DAYS",
    "CombinedRecord",
    "FundingHistoryWindow",
]
