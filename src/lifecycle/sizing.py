"""Position sizing for recommendations."""
import logging
from decimal import Decimal
from typing import Optional

from src.config.trading_config import TradingConfig
from src.models.recommendation import Recommendation, RecommendationAction
from src.risk.risk_manager import RiskValidator
from src.storage.state_store import TradingStateStore


logger = logging.getLogger(__name__)


def risk_fraction(config: TradingConfig, confidence: int) -> Decimal:
    """Fraction of portfolio value to risk on one trade.

    Equal weighting uses ``max_position_size`` as is; confidence weighting
    scales it by ``confidence / 100``.
    """
    if config.position_sizing_strategy == "confidence":
        return config.max_position_size * Decimal(confidence) / 100
    return config.max_position_size


class PositionSizer:
    """Turns a recommendation into a trade quantity."""

    def __init__(self, risk_validator: RiskValidator, store: TradingStateStore):
        self._risk_validator = risk_validator
        self._store = store

    async def quantity_for(
        self,
        recommendation: Recommendation,
        stop_loss: Optional[Decimal],
        config: TradingConfig,
    ) -> Decimal:
        """Return the quantity to trade, or 0 if nothing should be traded.

        A SELL closes the whole holding. A BUY without a stop is sized as if
        the stop sat at the default width below entry.
        """
        if recommendation.action == RecommendationAction.SELL:
            holding = await self._store.get_holding(recommendation.symbol)
            return holding.quantity if holding is not None else Decimal("0")

        entry = recommendation.entry_price
        if stop_loss is None:
            stop_loss = entry * (1 - self._risk_validator.settings.default_stop_loss_width)

        quantity = await self._risk_validator.size_position(
            recommendation.symbol,
            entry,
            stop_loss,
            risk_fraction(config, recommendation.confidence),
        )
        logger.debug(
            f"Sized recommendation {recommendation.id} ({recommendation.symbol}): {quantity} "
            f"using {config.position_sizing_strategy} sizing"
        )
        return quantity
