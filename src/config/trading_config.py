# src/config/trading_config.py
"""Per-deployment trading policy and the providers that serve it."""
from abc import ABC, abstractmethod
from decimal import Decimal
from pathlib import Path
from typing import Literal

import aiofiles
import yaml
from pydantic import BaseModel, Field


SizingStrategy = Literal["equal", "confidence"]
ExitStrategy = Literal["full", "partial", "trailing"]


class TradingConfig(BaseModel):
    """Trading policy owned by the settings collaborator.

    The core never persists this; it is read at the start of each cycle and
    passed explicitly into every engine call.

    Attributes:
        auto_execute: Master switch for the recommendation cycle.
        confidence_threshold: Minimum recommendation confidence (0-100).
        human_approval: Queue trades for sign-off instead of executing.
        position_sizing_strategy: "equal" or "confidence" weighted sizing.
        max_position_size: Fraction of portfolio value risked per trade.
        exit_strategy: How take-profit events are handled.
        auto_stop_loss: Derive a stop-loss for BUYs that arrive without one.
    """

    auto_execute: bool = False
    confidence_threshold: int = Field(default=75, ge=0, le=100)
    human_approval: bool = True
    position_sizing_strategy: SizingStrategy = "equal"
    max_position_size: Decimal = Field(default=Decimal("0.05"), gt=0, le=1)
    exit_strategy: ExitStrategy = "partial"
    auto_stop_loss: bool = True

    def snapshot(self) -> dict:
        """Return a JSON-ready copy for the execution log."""
        return self.model_dump(mode="json")


class TradingConfigProvider(ABC):
    """Source of the read-only trading configuration."""

    @abstractmethod
    async def get_config(self) -> TradingConfig:
        """Return the configuration currently in effect."""
        pass


class StaticTradingConfigProvider(TradingConfigProvider):
    """Serves a fixed configuration, typically the YAML ``trading`` section."""

    def __init__(self, config: TradingConfig):
        self._config = config

    async def get_config(self) -> TradingConfig:
        return self._config


class YamlTradingConfigProvider(TradingConfigProvider):
    """Re-reads a YAML file on every call so external edits take effect.

    The file may hold the fields at top level or under a ``trading`` key.
    A missing file yields the defaults.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    async def get_config(self) -> TradingConfig:
        if not self._path.exists():
            return TradingConfig()

        async with aiofiles.open(self._path, "r") as f:
            content = await f.read()

        data = yaml.safe_load(content) or {}
        if "trading" in data:
            data = data["trading"] or {}
        return TradingConfig(**data)
