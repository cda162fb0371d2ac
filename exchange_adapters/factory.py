"""
Adapter factory for creating funding adapters from exchange configuration.
"""

from typing import Dict, Iterable, List, Type

from exchange_adapters.base_funding_adapter import BaseFundingAdapter
from exchange_adapters.base_models import AdapterInitError, ExchangeConfig
from exchange_adapters.ccxt_adapter import CcxtFundingAdapter
from helpers.unified_logger import get_core_logger


logger = get_core_logger("adapter_factory")


class AdapterFactory:
    """
    Factory class for creating funding adapters.

    Exchanges without a registered custom adapter go through ccxt.
    """

    _registered_adapters: Dict[str, str] = {}

    @classmethod
    def register_adapter(cls, exchange_id: str, class_path: str) -> None:
        """Route ``exchange_id`` to a custom adapter class (dotted import path)."""
        cls._registered_adapters[exchange_id.lower()] = class_path

    @classmethod
    def unregister_adapter(cls, exchange_id: str) -> None:
        cls._registered_adapters.pop(exchange_id.lower(), None)

    @classmethod
    def create_adapter(
        cls,
        config: ExchangeConfig,
        timeout_ms: int = 10000,
    ) -> BaseFundingAdapter:
        """Create an adapter for one exchange.

        Args:
            config: Exchange polling configuration
            timeout_ms: Per-request timeout

        Returns:
            Adapter instance (markets not loaded yet)

        Raises:
            AdapterInitError: If the exchange is unknown or its adapter can't be imported
        """
        exchange_id = config.id.lower()

        class_path = cls._registered_adapters.get(exchange_id)
        if class_path:
            adapter_class = cls._import_adapter_class(class_path)
            return adapter_class.from_config(config)

        return CcxtFundingAdapter(
            exchange_id,
            enable_rate_limit=config.enable_rate_limit,
            default_type=config.default_type,
            funding_params=config.funding_params,
            timeout_ms=timeout_ms,
        )

    @classmethod
    def _import_adapter_class(cls, class_path: str) -> Type[BaseFundingAdapter]:
        """Dynamically import an adapter class.

        Raises:
            AdapterInitError: If the class cannot be imported or is not an adapter
        """
        try:
            module_path, class_name = class_path.rsplit('.', 1)
            module = __import__(module_path, fromlist=[class_name])
            adapter_class = getattr(module, class_name)
        except (ImportError, AttributeError, ValueError) as e:
            raise AdapterInitError(f"Failed to import adapter class {class_path}: {e}")

        if not isinstance(adapter_class, type) or not issubclass(adapter_class, BaseFundingAdapter):
            raise AdapterInitError(
                f"Adapter class {class_path} must inherit from BaseFundingAdapter"
            )
        return adapter_class

    @classmethod
    def create_adapters(
        cls,
        configs: Iterable[ExchangeConfig],
        timeout_ms: int = 10000,
    ) -> List[BaseFundingAdapter]:
        """
        Create adapters for several exchanges, skipping the ones that fail.

        A single unknown or broken exchange must not prevent the others from
        being polled.
        """
        adapters = []
        failed_exchanges = []

        for config in configs:
            try:
                adapters.append(cls.create_adapter(config, timeout_ms=timeout_ms))
            except AdapterInitError as e:
                failed_exchanges.append(config.id)
                logger.error(f"❌ Failed to initialize {config.id} adapter: {e}")

        if failed_exchanges:
            logger.warning(f"⚠️ Skipping exchanges this cycle: {failed_exchanges}")

        return adapters


__all__ = ["AdapterFactory"]
