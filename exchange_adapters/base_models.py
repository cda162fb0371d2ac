"""
Shared data structures and exceptions for exchange adapters.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_FUNDING_INTERVAL = "8h"


# ============================================================================
# EXCEPTIONS
# ============================================================================


class AdapterError(Exception):
    """Base class for every error raised by an exchange adapter."""

    def __init__(self, message: str, exchange: Optional[str] = None):
        super().__init__(message)
        self.exchange = exchange


class AdapterInitError(AdapterError):
    """Raised when an exchange cannot be initialised or its markets cannot be loaded."""
    pass


class NetworkError(AdapterError):
    """Raised on transport failures and timeouts."""
    pass


class RateLimitError(NetworkError):
    """Raised when the exchange throttles the caller."""
    pass


class ExchangeResponseError(AdapterError):
    """Raised when the exchange answers but rejects the request."""
    pass


class UnsupportedOperationError(AdapterError):
    """Raised when the exchange does not offer the requested endpoint."""
    pass


def is_retryable_error(exc: BaseException) -> bool:
    """
    Whether a failed exchange call is worth another attempt.

    Capability errors are permanent for an exchange; everything else the
    adapter raises is treated as transient.
    """
    return isinstance(exc, AdapterError) and not isinstance(exc, UnsupportedOperationError)


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass(frozen=True)
class FundingObservation:
    """
    One exchange's reported funding rate for one symbol at a point in time.

    ``funding_rate`` is a fraction (``Decimal("0.0001")`` is 0.01%). A value of
    ``None`` means the exchange listed the symbol without a rate.
    """

    exchange: str
    symbol: str
    funding_rate: Optional[Decimal]
    timestamp: Optional[datetime] = None
    mark_price: Optional[Decimal] = None
    funding_interval: str = DEFAULT_FUNDING_INTERVAL

    @property
    def key(self) -> tuple[str, str]:
        return (self.exchange, self.symbol)


class ExchangeConfig(BaseModel):
    """Static polling configuration for one exchange."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="ccxt exchange id, e.g. 'binance'")
    enable_rate_limit: bool = True
    default_type: Optional[str] = Field(
        None,
        description="Market type selector passed to ccxt options (e.g. 'future')",
    )
    funding_params: Dict[str, Any] = Field(
        default_factory=dict,
        description="Extra params forwarded to the bulk funding-rate request",
    )

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> Any:
        # ccxt ids and registry keys are lowercase
        if isinstance(value, str):
            return value.strip().lower()
        return value


__all__ = [
    "DEFAULT_FUNDING_INTERVAL",
    "AdapterError",
    "AdapterInitError",
    "NetworkError",
    "RateLimitError",
    "ExchangeResponseError",
    "UnsupportedOperationError",
    "is_retryable_error",
    "FundingObservation",
    "ExchangeConfig",
]
