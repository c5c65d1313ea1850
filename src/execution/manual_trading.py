# src/execution/manual_trading.py
"""Manual trades submitted by a user, with advisory risk warnings."""
import logging
import time
from decimal import Decimal
from typing import Optional

from src.config.trading_config import TradingConfig
from src.execution.models import ManualTradeResult
from src.execution.trade_executor import TradeExecutor
from src.journal.journal_manager import JournalManager, classify_failure
from src.market_data.price_feed import PriceFeed
from src.models.execution_log import FailureKind, TriggerType
from src.models.portfolio import TradeSide, TradeType
from src.risk.models import RiskCheckResult
from src.risk.risk_manager import RiskValidator


logger = logging.getLogger(__name__)


class ManualTradeDesk:
    """Executes user trades after a manual-override risk check.

    Risk findings are returned as warnings; the user decides. Only a failure to
    gather risk inputs blocks the trade.
    """

    def __init__(
        self,
        executor: TradeExecutor,
        risk_validator: RiskValidator,
        journal: JournalManager,
        price_feed: PriceFeed,
    ):
        self._executor = executor
        self._risk_validator = risk_validator
        self._journal = journal
        self._price_feed = price_feed

    async def submit(
        self,
        symbol: str,
        side: TradeSide,
        quantity: Decimal,
        stop_loss: Optional[Decimal] = None,
        take_profit: Optional[Decimal] = None,
        reasoning: str = "",
        config: Optional[TradingConfig] = None,
    ) -> ManualTradeResult:
        """Validate and execute a manual trade.

        Args:
            symbol: Coin symbol.
            side: BUY or SELL.
            quantity: Units to trade.
            stop_loss: Stop-loss for a BUY.
            take_profit: Take-profit target for a BUY.
            reasoning: Free text stored with the trade.
            config: Configuration recorded in the execution log.

        Returns:
            ManualTradeResult with the trade (if filled) and risk warnings.

        Raises:
            ValueError: If quantity is not positive.
        """
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {quantity}")

        started = time.monotonic()
        symbol = symbol.upper()

        try:
            price = await self._price_feed.get_current_price(symbol)
        except Exception as e:
            logger.error(f"Manual {side.value} {symbol} failed, no price: {e}")
            await self._journal.record(
                symbol=symbol,
                action=side.value,
                trigger_type=TriggerType.MANUAL,
                success=False,
                config=config,
                error=str(e),
                failure_kind=FailureKind.INFRASTRUCTURE,
                details={"quantity": quantity},
            )
            return ManualTradeResult(
                risk_check=RiskCheckResult(allowed=False, reason="Price unavailable"),
                error=str(e),
            )

        risk_check = await self._risk_validator.validate(
            symbol, side, quantity, price, stop_loss, is_manual_override=True
        )
        for warning in risk_check.warnings:
            logger.warning(f"Manual {side.value} {symbol}: {warning}")

        if not risk_check.allowed:
            await self._journal.record(
                symbol=symbol,
                action=side.value,
                trigger_type=TriggerType.MANUAL,
                success=False,
                config=config,
                risk_check=risk_check,
                error=risk_check.reason,
                failure_kind=FailureKind.POLICY,
                details={"quantity": quantity, "price": price},
            )
            return ManualTradeResult(risk_check=risk_check, error=risk_check.reason)

        try:
            trade = await self._executor.execute(
                symbol=symbol,
                side=side,
                quantity=quantity,
                reasoning=reasoning or "Manual trade",
                stop_loss=stop_loss,
                take_profit=take_profit,
                trade_type=TradeType.MANUAL,
                triggered_by="user",
            )
        except Exception as e:
            logger.error(f"Manual {side.value} {quantity} {symbol} failed: {e}")
            await self._journal.record(
                symbol=symbol,
                action=side.value,
                trigger_type=TriggerType.MANUAL,
                success=False,
                config=config,
                risk_check=risk_check,
                latency_ms=int((time.monotonic() - started) * 1000),
                error=str(e),
                failure_kind=classify_failure(e),
                details={"quantity": quantity, "price": price},
            )
            return ManualTradeResult(risk_check=risk_check, error=str(e))

        await self._journal.record(
            symbol=symbol,
            action=side.value,
            trigger_type=TriggerType.MANUAL,
            success=True,
            config=config,
            risk_check=risk_check,
            trade_id=trade.id,
            latency_ms=int((time.monotonic() - started) * 1000),
            details={"quantity": quantity, "price": trade.price, "realized_pnl": trade.realized_pnl},
        )
        return ManualTradeResult(risk_check=risk_check, trade=trade)
