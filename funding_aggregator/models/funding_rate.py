"""
Funding rate aggregate models
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, Field


# Trailing windows, in days, averaged for every (exchange, symbol)
WINDOW_DAYS: Tuple[int, ...] = (1, 2, 3, 5, 7)


class FundingHistoryWindow(BaseModel):
    """Average daily funding rate over several trailing windows"""
    exchange: str
    symbol: str
    averages: Dict[int, Optional[Decimal]] = Field(
        ...,
        description="window length in days -> sum of rates in window / days; None when the history fetch failed"
    )

    @property
    def key(self) -> Tuple[str, str]:
        return (self.exchange, self.symbol)

    @property
    def fetch_failed(self) -> bool:
        return all(value is None for value in self.averages.values())

    def has_signal(self) -> bool:
        """True when at least one window holds a non-zero average"""
        return any(value is not None and value != 0 for value in self.averages.values())

    @classmethod
    def missing(cls, exchange: str, symbol: str, window_days=WINDOW_DAYS) -> "FundingHistoryWindow":
        return cls(exchange=exchange, symbol=symbol, averages={days: None for days in window_days})


class CombinedRecord(BaseModel):
    """One row of the combined historical + live table"""
    exchange: str
    symbol: str

    # Historical side
    averages: Dict[int, Optional[Decimal]] = Field(default_factory=dict)

    # Live side
    observed_at: Optional[datetime] = None
    funding_rate: Optional[Decimal] = None
    funding_interval: Optional[str] = None
    mark_price: Optional[Decimal] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.exchange, self.symbol)
