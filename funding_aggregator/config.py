"""
Configuration management for the Funding Rate Aggregator
"""

from pathlib import Path
from typing import Annotated, Iterable, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from exchange_adapters.base_models import ExchangeConfig


DEFAULT_MATRIX_EXCHANGES = [
    ExchangeConfig(id="binance", enable_rate_limit=True, default_type="future"),
    ExchangeConfig(id="bybit"),
    ExchangeConfig(id="bitget"),
    ExchangeConfig(id="gate"),
    ExchangeConfig(id="lbank"),
    ExchangeConfig(id="bingx"),
    ExchangeConfig(id="mexc"),
    ExchangeConfig(id="okx", enable_rate_limit=False, default_type="future"),
    ExchangeConfig(id="bitmart", enable_rate_limit=False),
    ExchangeConfig(id="kucoinfutures"),
    ExchangeConfig(id="whitebit"),
    ExchangeConfig(id="coinex"),
    ExchangeConfig(id="woo"),
]

DEFAULT_COMBINED_EXCHANGES = [
    ExchangeConfig(id="binance", default_type="future", funding_params={"subType": "linear"}),
    ExchangeConfig(id="bybit", default_type="future"),
    ExchangeConfig(id="hyperliquid"),
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    http_log_level: str = "WARNING"

    # Output tables
    data_dir: Path = Path("data")
    matrix_table_filename: str = "all_funding_rates.csv"
    combined_table_filename: str = "combined_all_fundingfee.csv"
    display_timezone: str = "Asia/Shanghai"

    # Schedule
    matrix_interval_minutes: int = Field(10, ge=1)
    combined_interval_minutes: int = Field(20, ge=1)

    # Collection settings
    exchange_max_attempts: int = Field(2, ge=1)
    retry_wait_seconds: float = Field(1.0, ge=0)
    request_timeout_ms: int = Field(10000, ge=1)
    parallel_exchanges: bool = False

    # Exchanges
    matrix_exchanges: List[ExchangeConfig] = Field(
        default_factory=lambda: list(DEFAULT_MATRIX_EXCHANGES)
    )
    combined_exchanges: List[ExchangeConfig] = Field(
        default_factory=lambda: list(DEFAULT_COMBINED_EXCHANGES)
    )
    disabled_exchanges: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="Exchange ids to skip in every cycle",
    )

    # Read API
    service_host: str = "0.0.0.0"
    service_port: int = 3000
    run_scheduler_with_api: bool = True

    @field_validator("disabled_exchanges", mode="before")
    @classmethod
    def _split_disabled_exchanges(cls, value: List[str] | str | None) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            if not value:
                return []
            return [exchange.strip() for exchange in value.split(",") if exchange.strip()]
        return value

    @property
    def matrix_table_path(self) -> Path:
        return self.data_dir / self.matrix_table_filename

    @property
    def combined_table_path(self) -> Path:
        return self.data_dir / self.combined_table_filename

    def active_exchanges(self, configs: Iterable[ExchangeConfig]) -> List[ExchangeConfig]:
        """Drop disabled exchanges, keeping configuration order."""
        disabled = {exchange.lower() for exchange in self.disabled_exchanges}
        return [config for config in configs if config.id.lower() not in disabled]


# Global settings instance
settings = Settings()
