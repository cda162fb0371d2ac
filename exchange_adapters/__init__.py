"""
Exchange adapters: read-only access to exchange market lists and funding endpoints.
"""

from exchange_adapters.base_funding_adapter import BaseFundingAdapter
from exchange_adapters.base_models import (
    DEFAULT_FUNDING_INTERVAL,
    AdapterError,
    AdapterInitError,
    ExchangeConfig,
    ExchangeResponseError,
    FundingObservation,
    NetworkError,
    RateLimitError,
    UnsupportedOperationError,
    is_retryable_error,
)
from exchange_adapters.ccxt_adapter import CcxtFundingAdapter
from exchange_adapters.factory import AdapterFactory

__all__ = [
    "BaseFundingAdapter",
    "CcxtFundingAdapter",
    "AdapterFactory",
    "DEFAULT_FUNDING_INTERVAL",
    "AdapterError",
    "AdapterInitError",
    "ExchangeConfig",
    "ExchangeResponseError",
    "FundingObservation",
    "NetworkError",
    "RateLimitError",
    "UnsupportedOperationError",
    "is_retryable_error",
]
