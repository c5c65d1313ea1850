# src/monitor/position_monitor.py
"""Protective exits for open positions: stop-loss, take-profit, trailing stop."""
import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.config.settings import MonitorSettings
from src.config.trading_config import TradingConfig
from src.execution.models import ProtectionUpdate
from src.execution.trade_executor import TradeExecutor
from src.journal.journal_manager import JournalManager, classify_failure
from src.market_data.price_feed import PriceFeed
from src.models.execution_log import TriggerType
from src.models.portfolio import Holding, Trade, TradeSide, TradeType
from src.monitor.models import MonitorStats
from src.storage.state_store import TradingStateStore


logger = logging.getLogger(__name__)


class PositionMonitor:
    """Checks every holding against its protective levels.

    Stop-losses are checked first and always close the whole position. Take
    profits follow the configured exit strategy:

    - full: sell everything at the first target.
    - partial: sell part at the first target and move the stop to breakeven,
      then sell the rest at the second target.
    - trailing: no fixed target; the stop ratchets up behind the price.

    Exits bypass the risk validator.
    """

    def __init__(
        self,
        store: TradingStateStore,
        price_feed: PriceFeed,
        executor: TradeExecutor,
        journal: JournalManager,
        settings: Optional[MonitorSettings] = None,
    ):
        self._store = store
        self._price_feed = price_feed
        self._executor = executor
        self._journal = journal
        self._settings = settings or MonitorSettings()

    async def run_cycle(self, config: TradingConfig, now: Optional[datetime] = None) -> MonitorStats:
        """Check all open positions once.

        A failure on one position is logged and counted; the others are still
        checked.
        """
        now = now or datetime.now()
        stats = MonitorStats()

        for holding in await self._store.get_holdings():
            stats.checked += 1
            try:
                await self._check_position(holding, config, now, stats)
            except Exception as e:
                logger.error(f"Error monitoring {holding.symbol}: {e}")
                stats.errors += 1

        if stats.stop_loss_triggered or stats.take_profit_triggered or stats.trailing_stops_adjusted:
            logger.info(
                f"Monitor cycle: {stats.checked} checked, {stats.stop_loss_triggered} stop-loss, "
                f"{stats.take_profit_triggered} take-profit, "
                f"{stats.trailing_stops_adjusted} trailing adjustments, {stats.errors} errors"
            )
        return stats

    async def _check_position(
        self,
        holding: Holding,
        config: TradingConfig,
        now: datetime,
        stats: MonitorStats,
    ) -> None:
        price = await self._price_feed.get_current_price(holding.symbol)

        if holding.stop_loss is not None and price <= holding.stop_loss:
            logger.warning(
                f"Stop-loss hit for {holding.symbol}: ${price:,.2f} <= ${holding.stop_loss:,.2f}"
            )
            await self._exit(
                holding,
                holding.quantity,
                price,
                holding.stop_loss,
                TriggerType.STOP_LOSS,
                TradeType.STOP_LOSS,
                f"stop_loss_${holding.stop_loss}",
                config,
                now,
            )
            stats.stop_loss_triggered += 1
            return

        if config.exit_strategy == "full":
            if holding.take_profit is not None and price >= holding.take_profit:
                await self._exit(
                    holding,
                    holding.quantity,
                    price,
                    holding.take_profit,
                    TriggerType.TAKE_PROFIT_1,
                    TradeType.TAKE_PROFIT,
                    f"take_profit_${holding.take_profit}",
                    config,
                    now,
                )
                stats.take_profit_triggered += 1

        elif config.exit_strategy == "partial":
            if (
                not holding.partial_exit_taken
                and holding.take_profit is not None
                and price >= holding.take_profit
            ):
                quantity = holding.quantity * self._settings.partial_exit_fraction
                await self._exit(
                    holding,
                    quantity,
                    price,
                    holding.take_profit,
                    TriggerType.TAKE_PROFIT_1,
                    TradeType.TAKE_PROFIT,
                    f"take_profit_1_${holding.take_profit}",
                    config,
                    now,
                    protection=ProtectionUpdate(
                        stop_loss=holding.average_price, partial_exit_taken=True
                    ),
                )
                stats.take_profit_triggered += 1
            elif (
                holding.partial_exit_taken
                and holding.take_profit_2 is not None
                and price >= holding.take_profit_2
            ):
                await self._exit(
                    holding,
                    holding.quantity,
                    price,
                    holding.take_profit_2,
                    TriggerType.TAKE_PROFIT_2,
                    TradeType.TAKE_PROFIT,
                    f"take_profit_2_${holding.take_profit_2}",
                    config,
                    now,
                )
                stats.take_profit_triggered += 1

        elif config.exit_strategy == "trailing":
            if await self._trail_stop(holding, price, config, now):
                stats.trailing_stops_adjusted += 1

    async def _exit(
        self,
        holding: Holding,
        quantity: Decimal,
        price: Decimal,
        threshold: Decimal,
        trigger_type: TriggerType,
        trade_type: TradeType,
        triggered_by: str,
        config: TradingConfig,
        now: datetime,
        protection: Optional[ProtectionUpdate] = None,
    ) -> Trade:
        """SELL ``quantity`` of a holding and log the trigger."""
        started = time.monotonic()
        details = {
            "threshold": threshold,
            "trigger_price": price,
            "quantity": quantity,
            "unrealized_pnl": (price - holding.average_price) * quantity,
        }

        try:
            trade = await self._executor.execute(
                symbol=holding.symbol,
                side=TradeSide.SELL,
                quantity=quantity,
                reasoning=f"{trigger_type.value} triggered at ${price:,.2f} (level ${threshold:,.2f})",
                trade_type=trade_type,
                triggered_by=triggered_by,
                protection=protection,
                now=now,
            )
        except Exception as e:
            await self._journal.record(
                symbol=holding.symbol,
                action=TradeSide.SELL.value,
                trigger_type=trigger_type,
                success=False,
                config=config,
                latency_ms=int((time.monotonic() - started) * 1000),
                error=str(e),
                failure_kind=classify_failure(e),
                details=details,
                now=now,
            )
            raise

        await self._journal.record(
            symbol=holding.symbol,
            action=TradeSide.SELL.value,
            trigger_type=trigger_type,
            success=True,
            config=config,
            trade_id=trade.id,
            latency_ms=int((time.monotonic() - started) * 1000),
            details={**details, "realized_pnl": trade.realized_pnl},
            now=now,
        )
        logger.info(
            f"{trigger_type.value} exit: sold {quantity} {holding.symbol} @ ${trade.price:,.2f}, "
            f"P&L ${trade.realized_pnl:,.2f}"
        )
        return trade

    async def _trail_stop(
        self,
        holding: Holding,
        price: Decimal,
        config: TradingConfig,
        now: datetime,
    ) -> bool:
        """Raise the stop behind the price. Returns True if it moved."""
        candidate = price * (1 - self._settings.trailing_stop_fraction)
        if holding.stop_loss is not None and candidate <= holding.stop_loss:
            return False

        updated = await self._executor.update_protection(
            holding.symbol, ProtectionUpdate(stop_loss=candidate, raise_stop_only=True), now=now
        )
        if updated is None or updated.stop_loss != candidate:
            return False

        await self._journal.record(
            symbol=holding.symbol,
            action="ADJUST_STOP",
            trigger_type=TriggerType.TRAILING_STOP,
            success=True,
            config=config,
            details={
                "previous_stop": holding.stop_loss,
                "threshold": candidate,
                "trigger_price": price,
                "quantity": holding.quantity,
                "unrealized_pnl": (price - holding.average_price) * holding.quantity,
            },
            now=now,
        )
        logger.info(f"Trailing stop for {holding.symbol} raised to ${candidate:,.2f}")
        return True
