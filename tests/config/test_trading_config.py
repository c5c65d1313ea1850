# tests/config/test_trading_config.py
"""Tests for TradingConfig and its providers."""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.config.trading_config import (
    StaticTradingConfigProvider,
    TradingConfig,
    YamlTradingConfigProvider,
)


class TestTradingConfig:
    """Tests for TradingConfig model."""

    def test_defaults_are_conservative(self):
        config = TradingConfig()

        assert config.auto_execute is False
        assert config.human_approval is True
        assert config.confidence_threshold == 75
        assert config.auto_stop_loss is True

    def test_snapshot_is_json_ready(self):
        snapshot = TradingConfig(max_position_size=Decimal("0.03")).snapshot()

        assert snapshot["max_position_size"] == "0.03"
        assert snapshot["exit_strategy"] == "partial"

    def test_rejects_unknown_strategy(self):
        with pytest.raises(ValidationError):
            TradingConfig(exit_strategy="moonshot")

    def test_rejects_threshold_out_of_range(self):
        with pytest.raises(ValidationError):
            TradingConfig(confidence_threshold=101)


class TestProviders:
    """Tests for config providers."""

    @pytest.mark.asyncio
    async def test_static_provider(self):
        config = TradingConfig(auto_execute=True)

        assert await StaticTradingConfigProvider(config).get_config() is config

    @pytest.mark.asyncio
    async def test_yaml_provider_reads_trading_section(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("trading:\n  auto_execute: true\n  exit_strategy: trailing\nrisk: {}\n")

        config = await YamlTradingConfigProvider(path).get_config()

        assert config.auto_execute is True
        assert config.exit_strategy == "trailing"

    @pytest.mark.asyncio
    async def test_yaml_provider_reads_top_level_fields(self, tmp_path):
        path = tmp_path / "trading.yaml"
        path.write_text("confidence_threshold: 90\n")

        config = await YamlTradingConfigProvider(path).get_config()

        assert config.confidence_threshold == 90

    @pytest.mark.asyncio
    async def test_yaml_provider_sees_edits(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("trading:\n  auto_execute: false\n")
        provider = YamlTradingConfigProvider(path)

        assert (await provider.get_config()).auto_execute is False
        path.write_text("trading:\n  auto_execute: true\n")
        assert (await provider.get_config()).auto_execute is True

    @pytest.mark.asyncio
    async def test_missing_file_gives_defaults(self, tmp_path):
        config = await YamlTradingConfigProvider(tmp_path / "absent.yaml").get_config()

        assert config == TradingConfig()
