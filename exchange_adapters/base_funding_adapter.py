"""Base interface for funding adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .base_models import ExchangeConfig, FundingObservation


class BaseFundingAdapter(ABC):
    """
    Uniform, capability-checked access to one exchange's funding endpoints.

    The adapter is read-only and uses public endpoints. It never retries:
    every call either returns or raises an ``AdapterError`` subclass, and the
    caller decides whether to try again.

    Lifecycle:
        ```python
        async with CcxtFundingAdapter("binance", default_type="future") as adapter:
            await adapter.load_markets()
            if adapter.supports_bulk_funding_rates():
                rates = await adapter.fetch_bulk_funding_rates()
            else:
                rates = {
                    symbol: await adapter.fetch_funding_rate(symbol)
                    for symbol in adapter.list_contract_symbols()
                }
        ```
    """

    def __init__(self, exchange_id: str):
        """
        Args:
            exchange_id: Identifier used to tag every observation (e.g. "binance")
        """
        self.exchange_id = exchange_id

    @classmethod
    def from_config(cls, config: ExchangeConfig) -> BaseFundingAdapter:
        """
        Build the adapter for a registered exchange.

        Adapters that need more than the exchange id override this and read
        the rest of ``config`` (``default_type``, ``funding_params``...).
        """
        return cls(config.id)

    # ========================================================================
    # MARKETS
    # ========================================================================

    @abstractmethod
    async def load_markets(self) -> None:
        """
        Load market metadata. Must complete before any rate query.

        Raises:
            AdapterInitError: On network or auth failure
        """
        pass

    @abstractmethod
    def list_contract_symbols(self) -> List[str]:
        """
        Symbols whose market metadata marks them as contract/future instruments.

        Spot markets are excluded.

        Raises:
            AdapterInitError: If markets have not been loaded
        """
        pass

    # ========================================================================
    # CAPABILITIES
    # ========================================================================

    @abstractmethod
    def supports_bulk_funding_rates(self) -> bool:
        """Whether ``fetch_bulk_funding_rates`` may be called."""
        pass

    # ========================================================================
    # FUNDING RATES
    # ========================================================================

    @abstractmethod
    async def fetch_bulk_funding_rates(
        self,
        symbols: Optional[Sequence[str]] = None,
    ) -> Dict[str, FundingObservation]:
        """
        Fetch current funding rates for many symbols in one request.

        Args:
            symbols: Restrict the request to these symbols (None = all)

        Returns:
            Mapping of symbol to observation. Observations may carry a
            ``None`` funding rate when the exchange lists one without a value.

        Raises:
            UnsupportedOperationError: If the exchange has no bulk endpoint
        """
        pass

    @abstractmethod
    async def fetch_funding_rate(self, symbol: str) -> FundingObservation:
        """Fetch the current funding rate for a single symbol."""
        pass

    @abstractmethod
    async def fetch_funding_rate_history(
        self,
        symbol: str,
        since: datetime,
    ) -> List[FundingObservation]:
        """
        Fetch realised funding rates for ``symbol`` since ``since``.

        Returns:
            Observations in exchange order; may be empty
        """
        pass

    # ========================================================================
    # RESOURCES
    # ========================================================================

    async def close(self) -> None:
        """Release network resources. Safe to call more than once."""
        return None

    async def __aenter__(self) -> "BaseFundingAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} exchange={self.exchange_id}>"


__all__ = ["BaseFundingAdapter"]
