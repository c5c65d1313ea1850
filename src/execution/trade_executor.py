# src/execution/trade_executor.py
"""Simulated trade execution against the paper portfolio."""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from src.config.settings import ExecutionSettings
from src.execution.errors import InsufficientFundsError, InsufficientPositionError
from src.execution.models import ProtectionUpdate
from src.market_data.price_feed import PriceFeed
from src.models.approval import ApprovalStatus
from src.models.portfolio import Holding, Trade, TradeSide, TradeType
from src.models.recommendation import RecommendationStatus
from src.storage.state_store import TradingStateStore


logger = logging.getLogger(__name__)


class TradeExecutor:
    """Fill paper trades at the current price with simulated slippage and fees.

    The market price and slippage are fetched first. Cash, holding and the
    trade ledger are then changed together inside one store transaction, so a
    failure leaves the portfolio exactly as it was. A linked recommendation or
    approval is marked executed in that same transaction.

    Attributes:
        settings: Fee and slippage configuration.
    """

    def __init__(
        self,
        store: TradingStateStore,
        price_feed: PriceFeed,
        settings: Optional[ExecutionSettings] = None,
    ):
        """Initialize TradeExecutor.

        Args:
            store: State store owning cash, holdings and trades.
            price_feed: Source of market prices and slippage estimates.
            settings: Fee and slippage settings. Defaults to ExecutionSettings().
        """
        self._store = store
        self._price_feed = price_feed
        self.settings = settings or ExecutionSettings()

    async def execute(
        self,
        symbol: str,
        side: TradeSide,
        quantity: Decimal,
        reasoning: str,
        recommendation_id: Optional[int] = None,
        stop_loss: Optional[Decimal] = None,
        take_profit: Optional[Decimal] = None,
        trade_type: TradeType = TradeType.MANUAL,
        triggered_by: str = "user",
        take_profit_2: Optional[Decimal] = None,
        protection: Optional[ProtectionUpdate] = None,
        approval_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Trade:
        """Execute a paper trade.

        Args:
            symbol: Coin symbol.
            side: BUY or SELL.
            quantity: Units to trade; must be positive.
            reasoning: Free-text reason stored on the trade.
            recommendation_id: Originating recommendation, if any.
            stop_loss: Stop-loss to set on the holding (BUY only).
            take_profit: First take-profit target (BUY only).
            trade_type: How the trade originated.
            triggered_by: Actor or rule that triggered it.
            take_profit_2: Second take-profit target (BUY only).
            protection: Levels to apply to the holding left after a SELL.
            approval_id: Approval request being filled, if any.
            now: Execution time. Defaults to datetime.now().

        Returns:
            The recorded Trade.

        Raises:
            ValueError: If quantity is not positive.
            PriceUnavailableError: If the market price cannot be fetched.
            InsufficientFundsError: BUY costs more than available cash.
            InsufficientPositionError: SELL exceeds the held quantity.
            InvalidStatusTransition: The recommendation or approval was already
                executed or closed.
        """
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {quantity}")

        market_price = await self._price_feed.get_current_price(symbol)
        slippage_fraction = await self._price_feed.estimate_slippage(
            symbol, side, market_price * quantity
        )
        slippage = market_price * slippage_fraction
        if side == TradeSide.BUY:
            price = market_price + slippage
        else:
            price = market_price - slippage
        fee = price * quantity * self.settings.fee_rate
        now = now or datetime.now()

        async with self._store.transaction() as state:
            if approval_id is not None:
                approval = state.set_approval_status(approval_id, ApprovalStatus.EXECUTED, now)
                recommendation_id = approval.recommendation_id
            if recommendation_id is not None:
                state.set_recommendation_status(recommendation_id, RecommendationStatus.EXECUTED, now)

            if side == TradeSide.BUY:
                total_cost = price * quantity + fee
                if state.cash < total_cost:
                    logger.warning(
                        f"Rejected BUY {quantity} {symbol}: needs ${total_cost:,.2f}, "
                        f"cash ${state.cash:,.2f}"
                    )
                    raise InsufficientFundsError(symbol, total_cost, state.cash)

                state.cash -= total_cost
                state.holdings[symbol] = self._add_to_holding(
                    state.holdings.get(symbol),
                    symbol,
                    quantity,
                    price,
                    stop_loss,
                    take_profit,
                    take_profit_2,
                    now,
                )
                realized_pnl = None
            else:
                holding = state.holdings.get(symbol)
                held = holding.quantity if holding else Decimal("0")
                if holding is None or held < quantity:
                    logger.warning(f"Rejected SELL {quantity} {symbol}: holding {held}")
                    raise InsufficientPositionError(symbol, quantity, held)

                total_cost = price * quantity - fee
                realized_pnl = (price - holding.average_price) * quantity - fee
                state.cash += total_cost

                remaining = held - quantity
                if remaining == 0:
                    del state.holdings[symbol]
                else:
                    reduced = holding.model_copy(update={"quantity": remaining, "updated_at": now})
                    if protection is not None:
                        reduced = protection.apply(reduced, now)
                    state.holdings[symbol] = reduced

            trade = Trade(
                id=state.next_trade_id(),
                symbol=symbol,
                side=side,
                quantity=quantity,
                price=price,
                market_price=market_price,
                fee=fee,
                slippage=slippage,
                total_cost=total_cost,
                realized_pnl=realized_pnl,
                trade_type=trade_type,
                triggered_by=triggered_by,
                reasoning=reasoning,
                recommendation_id=recommendation_id,
                executed_at=now,
            )
            state.trades.append(trade)

        pnl = f", P&L ${realized_pnl:,.2f}" if realized_pnl is not None else ""
        logger.info(
            f"Executed {side.value} {quantity} {symbol} @ ${price:,.2f} "
            f"(market ${market_price:,.2f}, fee ${fee:,.2f}{pnl}) [{trade_type.value}]"
        )
        return trade

    def _add_to_holding(
        self,
        existing: Optional[Holding],
        symbol: str,
        quantity: Decimal,
        price: Decimal,
        stop_loss: Optional[Decimal],
        take_profit: Optional[Decimal],
        take_profit_2: Optional[Decimal],
        now: datetime,
    ) -> Holding:
        """Create a holding or fold a BUY into it at the weighted average price."""
        # a fresh first target re-arms the partial exit
        protection = ProtectionUpdate(
            stop_loss=stop_loss,
            take_profit=take_profit,
            take_profit_2=take_profit_2,
            partial_exit_taken=False if take_profit is not None else None,
        )
        if existing is None:
            holding = Holding(
                symbol=symbol,
                quantity=quantity,
                average_price=price,
                opened_at=now,
                updated_at=now,
            )
            return protection.apply(holding, now)

        new_quantity = existing.quantity + quantity
        average_price = (existing.quantity * existing.average_price + quantity * price) / new_quantity
        holding = existing.model_copy(
            update={"quantity": new_quantity, "average_price": average_price, "updated_at": now}
        )
        return protection.apply(holding, now)

    async def update_protection(
        self,
        symbol: str,
        update: ProtectionUpdate,
        now: Optional[datetime] = None,
    ) -> Optional[Holding]:
        """Change protective levels on a holding.

        Returns:
            The updated holding (unchanged if the update had no effect), or
            None if the symbol is not held.
        """
        now = now or datetime.now()
        async with self._store.transaction() as state:
            holding = state.holdings.get(symbol)
            if holding is None:
                return None
            updated = update.apply(holding, now)
            if updated is holding:
                return holding
            state.holdings[symbol] = updated

        logger.info(
            f"Updated protection for {symbol}: stop={updated.stop_loss}, "
            f"tp1={updated.take_profit}, tp2={updated.take_profit_2}"
        )
        return updated
