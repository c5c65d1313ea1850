# src/config/settings.py
from decimal import Decimal
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.config.trading_config import TradingConfig
from src.orchestrator.settings import OrchestratorSettings


class SystemConfig(BaseModel):
    name: str = "Crypto Paper Autopilot"
    version: str = "1.0.0"
    mode: str = "paper"


class RiskSettings(BaseModel):
    """Hard risk limits applied by the risk validator."""

    max_position_size: Decimal = Field(default=Decimal("0.05"), gt=0, le=1)
    max_portfolio_risk: Decimal = Field(default=Decimal("0.15"), gt=0, le=1)
    max_daily_loss: Decimal = Field(default=Decimal("0.03"), gt=0, le=1)
    max_drawdown: Decimal = Field(default=Decimal("0.20"), gt=0, le=1)
    max_open_positions: int = Field(default=5, ge=1)
    max_stop_loss_width: Decimal = Field(default=Decimal("0.10"), gt=0, lt=1)
    default_stop_loss_width: Decimal = Field(default=Decimal("0.10"), gt=0, lt=1)
    max_position_correlation: Decimal = Field(default=Decimal("0.7"), ge=0, le=1)
    min_trade_interval_minutes: int = Field(default=60, ge=0)
    large_position_warning: Decimal = Field(default=Decimal("0.50"), gt=0, le=1)
    quantity_precision: int = Field(default=8, ge=0, le=18)


class ExecutionSettings(BaseModel):
    """Settings for simulated trade execution."""

    fee_rate: Decimal = Field(default=Decimal("0.001"), ge=0, lt=1)
    default_slippage: Decimal = Field(default=Decimal("0.0075"), ge=0, lt=1)


class MarketDataSettings(BaseModel):
    """Settings for the external price feed."""

    quote_currency: str = "USD"
    requests_per_minute: int = Field(default=30, gt=0, le=600)
    max_retries: int = Field(default=3, ge=1, le=10)
    initial_delay_seconds: float = Field(default=1.0, ge=0)
    max_delay_seconds: float = Field(default=10.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    order_book_depth: int = Field(default=50, ge=1)


class LifecycleSettings(BaseModel):
    """Settings for the recommendation lifecycle."""

    freshness_hours: int = Field(default=24, ge=1)
    approval_ttl_minutes: int = Field(default=60, ge=1)
    approval_retry_minutes: int = Field(default=60, ge=1)
    default_stop_loss_fraction: Decimal = Field(default=Decimal("0.05"), gt=0, lt=1)


class MonitorSettings(BaseModel):
    """Settings for protective exit monitoring."""

    trailing_stop_fraction: Decimal = Field(default=Decimal("0.05"), gt=0, lt=1)
    partial_exit_fraction: Decimal = Field(default=Decimal("0.5"), gt=0, lt=1)


class StorageSettings(BaseModel):
    data_dir: str = "data/state"


class PortfolioSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PAPER_")

    starting_capital: Decimal = Field(default=Decimal("10000"), gt=0)


class Settings(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    trading: TradingConfig = Field(default_factory=TradingConfig)
    risk: RiskSettings = Field(default_factory=RiskSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    market_data: MarketDataSettings = Field(default_factory=MarketDataSettings)
    lifecycle: LifecycleSettings = Field(default_factory=LifecycleSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    portfolio: PortfolioSettings = Field(default_factory=PortfolioSettings)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file with env var overrides."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Portfolio settings come from the environment only.
        data.pop("portfolio", None)
        portfolio = PortfolioSettings()

        return cls(**data, portfolio=portfolio)
