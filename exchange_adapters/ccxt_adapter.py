"""
ccxt-backed funding adapter.

Wraps one ``ccxt.async_support`` exchange instance behind the
``BaseFundingAdapter`` contract and translates ccxt exceptions into the
adapter error taxonomy.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import ccxt.async_support as ccxt_async

from helpers.unified_logger import get_exchange_logger

from .base_funding_adapter import BaseFundingAdapter
from .base_models import (
    DEFAULT_FUNDING_INTERVAL,
    AdapterError,
    AdapterInitError,
    ExchangeResponseError,
    FundingObservation,
    NetworkError,
    RateLimitError,
    UnsupportedOperationError,
)


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a ccxt numeric field to Decimal, mapping null/NaN/garbage to None."""
    if value is None:
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if result.is_nan() or result.is_infinite():
        return None
    return result


def _to_datetime(timestamp_ms: Any) -> Optional[datetime]:
    if timestamp_ms is None:
        return None
    try:
        return datetime.fromtimestamp(int(timestamp_ms) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


class CcxtFundingAdapter(BaseFundingAdapter):
    """
    Funding adapter for any exchange ccxt knows about.

    Capabilities come from the exchange's ccxt ``has`` table, so callers ask
    ``supports_bulk_funding_rates()`` instead of probing methods.
    """

    def __init__(
        self,
        exchange_id: str,
        enable_rate_limit: bool = True,
        default_type: Optional[str] = None,
        funding_params: Optional[Dict[str, Any]] = None,
        timeout_ms: int = 10000,
        exchange: Optional[Any] = None,
    ):
        """
        Args:
            exchange_id: ccxt exchange id (e.g. "binance", "kucoinfutures")
            enable_rate_limit: Enable ccxt's built-in request throttling
            default_type: Market type selector (e.g. "future")
            funding_params: Extra params for the bulk funding-rate request
            timeout_ms: Per-request timeout handed to ccxt
            exchange: Pre-built ccxt exchange instance (bypasses construction)

        Raises:
            AdapterInitError: If ccxt does not know ``exchange_id``
        """
        super().__init__(exchange_id)
        self.funding_params = dict(funding_params or {})
        self.logger = get_exchange_logger(exchange_id)
        self._markets_loaded = False
        self._closed = False

        if exchange is not None:
            self._exchange = exchange
            return

        exchange_class = getattr(ccxt_async, exchange_id, None)
        if exchange_id not in ccxt_async.exchanges or exchange_class is None:
            raise AdapterInitError(
                f"Exchange {exchange_id} not supported by ccxt", exchange=exchange_id
            )

        config: Dict[str, Any] = {
            "enableRateLimit": enable_rate_limit,
            "timeout": timeout_ms,
        }
        if default_type:
            config["options"] = {"defaultType": default_type}

        self._exchange = exchange_class(config)

    # ========================================================================
    # MARKETS
    # ========================================================================

    async def load_markets(self) -> None:
        try:
            await self._exchange.load_markets()
        except (ccxt_async.BaseError, asyncio.TimeoutError) as e:
            raise AdapterInitError(
                f"{self.exchange_id}: failed to load markets: {e}",
                exchange=self.exchange_id,
            ) from e
        self._markets_loaded = True

    def list_contract_symbols(self) -> List[str]:
        if not self._markets_loaded:
            raise AdapterInitError(
                f"{self.exchange_id}: markets not loaded", exchange=self.exchange_id
            )

        symbols = []
        for key, market in (self._exchange.markets or {}).items():
            if market.get("contract") or market.get("future"):
                symbols.append(market.get("symbol") or key)
        return symbols

    # ========================================================================
    # CAPABILITIES
    # ========================================================================

    def _has(self, capability: str) -> bool:
        return bool((self._exchange.has or {}).get(capability))

    def supports_bulk_funding_rates(self) -> bool:
        return self._has("fetchFundingRates")

    # ========================================================================
    # FUNDING RATES
    # ========================================================================

    async def fetch_bulk_funding_rates(
        self,
        symbols: Optional[Sequence[str]] = None,
    ) -> Dict[str, FundingObservation]:
        self._require("fetchFundingRates")

        raw = await self._call(
            "fetch_funding_rates",
            self._exchange.fetch_funding_rates,
            list(symbols) if symbols else None,
            dict(self.funding_params),
        )
        entries = raw.values() if isinstance(raw, dict) else (raw or [])
        intervals = await self._fetch_funding_intervals(symbols)

        observations: Dict[str, FundingObservation] = {}
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("symbol"):
                continue
            symbol = entry["symbol"]
            observations[symbol] = self._parse_funding_rate(
                entry, symbol, intervals.get(symbol)
            )
        return observations

    async def fetch_funding_rate(self, symbol: str) -> FundingObservation:
        self._require("fetchFundingRate")

        entry = await self._call(
            "fetch_funding_rate", self._exchange.fetch_funding_rate, symbol
        )
        return self._parse_funding_rate(entry or {}, symbol)

    async def fetch_funding_rate_history(
        self,
        symbol: str,
        since: datetime,
    ) -> List[FundingObservation]:
        self._require("fetchFundingRateHistory")

        since_ms = int(since.timestamp() * 1000)
        entries = await self._call(
            "fetch_funding_rate_history",
            self._exchange.fetch_funding_rate_history,
            symbol,
            since_ms,
        )

        return [
            FundingObservation(
                exchange=self.exchange_id,
                symbol=entry.get("symbol") or symbol,
                funding_rate=_to_decimal(entry.get("fundingRate")),
                timestamp=_to_datetime(entry.get("timestamp")),
            )
            for entry in (entries or [])
            if isinstance(entry, dict)
        ]

    async def _fetch_funding_intervals(
        self,
        symbols: Optional[Sequence[str]],
    ) -> Dict[str, str]:
        """Per-symbol funding interval labels; empty when unavailable."""
        if not self._has("fetchFundingIntervals"):
            return {}

        try:
            raw = await self._call(
                "fetch_funding_intervals",
                self._exchange.fetch_funding_intervals,
                list(symbols) if symbols else None,
            )
        except AdapterError as e:
            # Interval lookup failure shouldn't fail the funding fetch
            self.logger.warning(f"Funding interval lookup failed (non-critical): {e}")
            return {}

        entries = raw.values() if isinstance(raw, dict) else (raw or [])
        return {
            entry["symbol"]: str(entry["interval"])
            for entry in entries
            if isinstance(entry, dict) and entry.get("symbol") and entry.get("interval")
        }

    def _parse_funding_rate(
        self,
        entry: Dict[str, Any],
        symbol: str,
        interval: Optional[str] = None,
    ) -> FundingObservation:
        interval = interval or entry.get("interval") or DEFAULT_FUNDING_INTERVAL
        return FundingObservation(
            exchange=self.exchange_id,
            symbol=entry.get("symbol") or symbol,
            funding_rate=_to_decimal(entry.get("fundingRate")),
            timestamp=_to_datetime(entry.get("timestamp")),
            mark_price=_to_decimal(entry.get("markPrice")),
            funding_interval=str(interval),
        )

    # ========================================================================
    # ERROR TRANSLATION
    # ========================================================================

    def _require(self, capability: str) -> None:
        if not self._has(capability):
            raise UnsupportedOperationError(
                f"{self.exchange_id} does not support {capability}",
                exchange=self.exchange_id,
            )

    async def _call(
        self,
        operation: str,
        method: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> Any:
        try:
            return await method(*args)
        except ccxt_async.BaseError as e:
            raise self._translate_error(operation, e) from e
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"{self.exchange_id}: {operation} timed out", exchange=self.exchange_id
            ) from e

    def _translate_error(self, operation: str, error: Exception) -> AdapterError:
        message = f"{self.exchange_id}: {operation} failed: {error}"
        # RateLimitExceeded subclasses ccxt's NetworkError, so check it first
        if isinstance(error, ccxt_async.RateLimitExceeded):
            return RateLimitError(message, exchange=self.exchange_id)
        if isinstance(error, ccxt_async.NotSupported):
            return UnsupportedOperationError(message, exchange=self.exchange_id)
        if isinstance(error, ccxt_async.NetworkError):
            return NetworkError(message, exchange=self.exchange_id)
        return ExchangeResponseError(message, exchange=self.exchange_id)

    # ========================================================================
    # RESOURCES
    # ========================================================================

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._exchange.close()


__all__ = ["CcxtFundingAdapter"]
