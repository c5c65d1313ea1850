"""Risk management engine for validating trades."""
import logging
from datetime import datetime, timedelta
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from src.config.settings import RiskSettings
from src.models.portfolio import Holding, Portfolio, Trade, TradeSide
from src.portfolio.portfolio_reader import PortfolioReader
from src.risk.correlation import max_correlation
from src.risk.models import (
    HaltStatus,
    PositionRisk,
    RiskCheckResult,
    RiskExposure,
    RiskSnapshot,
    RiskViolation,
)
from src.storage.state_store import TradingStateStore


logger = logging.getLogger(__name__)


def _pct(value: Decimal) -> str:
    return f"{value * 100:.1f}%"


def realized_loss_since(trades: list[Trade], since: datetime) -> Decimal:
    """Return today's net realized loss as a positive amount (0 if net positive)."""
    net = sum(
        (
            t.realized_pnl
            for t in trades
            if t.side == TradeSide.SELL and t.realized_pnl is not None and t.executed_at >= since
        ),
        Decimal("0"),
    )
    return -net if net < 0 else Decimal("0")


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class RiskValidator:
    """Validates proposed trades against portfolio risk limits.

    Eight checks run in a fixed order for every BUY. In automated mode the
    first failure denies the trade. Under manual override every check still
    runs but failures become warnings and the trade is allowed.

    SELL orders always pass: reducing exposure is never blocked.

    Attributes:
        settings: Configured risk limits.
    """

    def __init__(
        self,
        portfolio_reader: PortfolioReader,
        store: TradingStateStore,
        settings: Optional[RiskSettings] = None,
    ):
        """Initialize RiskValidator.

        Args:
            portfolio_reader: Source of the priced portfolio view.
            store: State store for holdings and the trade ledger.
            settings: Risk limits. Defaults to RiskSettings().
        """
        self._portfolio_reader = portfolio_reader
        self._store = store
        self.settings = settings or RiskSettings()

    async def build_snapshot(self, now: Optional[datetime] = None) -> RiskSnapshot:
        """Capture portfolio, holdings and trades at one point in time.

        Raises:
            PriceUnavailableError: If a held symbol cannot be priced.
        """
        state = await self._store.snapshot()
        portfolio = await self._portfolio_reader.get_portfolio(state)
        return RiskSnapshot(
            portfolio=portfolio,
            holdings=state.holdings,
            trades=state.trades,
            now=now or datetime.now(),
        )

    async def validate(
        self,
        symbol: str,
        side: TradeSide,
        quantity: Decimal,
        price: Decimal,
        stop_loss: Optional[Decimal] = None,
        is_manual_override: bool = False,
        now: Optional[datetime] = None,
    ) -> RiskCheckResult:
        """Validate a proposed trade.

        Args:
            symbol: Coin symbol, e.g. "BTC".
            side: BUY or SELL.
            quantity: Units to trade.
            price: Expected execution price.
            stop_loss: Stop-loss level for the new position, if any.
            is_manual_override: Downgrade failures to warnings.
            now: Evaluation time. Defaults to datetime.now().

        Returns:
            RiskCheckResult. A failure to gather risk inputs yields a deny.
        """
        if side == TradeSide.SELL:
            return RiskCheckResult(allowed=True, reason="SELL orders are always allowed")

        try:
            snapshot = await self.build_snapshot(now)
        except Exception as e:
            logger.error(f"Risk validation failed for {symbol}: {e}")
            return RiskCheckResult(allowed=False, reason="Risk validation error")

        return self.evaluate(snapshot, symbol, quantity, price, stop_loss, is_manual_override)

    def evaluate(
        self,
        snapshot: RiskSnapshot,
        symbol: str,
        quantity: Decimal,
        price: Decimal,
        stop_loss: Optional[Decimal] = None,
        is_manual_override: bool = False,
    ) -> RiskCheckResult:
        """Run the BUY checks against a snapshot. Pure; performs no I/O."""
        portfolio_value = snapshot.portfolio.total_value
        if portfolio_value <= 0:
            return RiskCheckResult(
                allowed=False,
                reason="Portfolio value is zero or negative",
                current_risk=portfolio_value,
            )

        checks = [
            lambda: self._check_position_size(quantity, price, portfolio_value),
            lambda: self._check_stop_required(stop_loss),
            lambda: self._check_stop_width(price, stop_loss),
            lambda: self._check_open_positions(snapshot, symbol),
            lambda: self._check_portfolio_risk(snapshot, quantity, price, stop_loss, portfolio_value),
            lambda: self._check_daily_loss(snapshot, portfolio_value),
            lambda: self._check_cooldown(snapshot, symbol),
            lambda: self._check_correlation(snapshot, symbol),
        ]

        warnings: list[str] = []
        for check in checks:
            violation = check()
            if violation is None:
                continue

            if not is_manual_override:
                logger.info(f"Risk check denied BUY {quantity} {symbol}: {violation.reason}")
                return RiskCheckResult(
                    allowed=False,
                    reason=violation.reason,
                    current_risk=violation.current_risk,
                    max_risk=violation.max_risk,
                )
            warnings.append(violation.warning)

        if warnings:
            logger.warning(
                f"Manual BUY {quantity} {symbol} allowed with {len(warnings)} warning(s)"
            )
            return RiskCheckResult(
                allowed=True,
                reason="Manual override: trade allowed with warnings",
                warnings=warnings,
            )

        return RiskCheckResult(allowed=True, reason="All risk checks passed")

    # Individual checks return None when they pass.

    def _check_position_size(
        self, quantity: Decimal, price: Decimal, portfolio_value: Decimal
    ) -> Optional[RiskViolation]:
        ratio = quantity * price / portfolio_value
        limit = self.settings.max_position_size
        if ratio <= limit:
            return None

        if ratio > self.settings.large_position_warning:
            warning = f"LARGE POSITION: {_pct(ratio)} of portfolio in a single trade"
        else:
            warning = f"Position size {_pct(ratio)} exceeds the {_pct(limit)} limit"
        return RiskViolation(
            check="position_size",
            reason=f"Position size {_pct(ratio)} exceeds maximum {_pct(limit)}",
            warning=warning,
            current_risk=ratio,
            max_risk=limit,
        )

    def _check_stop_required(self, stop_loss: Optional[Decimal]) -> Optional[RiskViolation]:
        if stop_loss is not None:
            return None
        return RiskViolation(
            check="stop_loss_required",
            reason="Stop-loss is required for automated trades",
            warning="No stop-loss set, the position has no downside protection",
        )

    def _check_stop_width(
        self, price: Decimal, stop_loss: Optional[Decimal]
    ) -> Optional[RiskViolation]:
        if stop_loss is None:
            return None
        width = (price - stop_loss) / price
        limit = self.settings.max_stop_loss_width
        if width <= limit:
            return None
        return RiskViolation(
            check="stop_loss_width",
            reason=f"Stop-loss {_pct(width)} below entry exceeds maximum {_pct(limit)}",
            warning=f"Wide stop-loss: {_pct(width)} below entry",
            current_risk=width,
            max_risk=limit,
        )

    def _check_open_positions(self, snapshot: RiskSnapshot, symbol: str) -> Optional[RiskViolation]:
        if symbol in snapshot.holdings:
            return None
        count = len(snapshot.holdings)
        limit = self.settings.max_open_positions
        if count < limit:
            return None
        return RiskViolation(
            check="open_positions",
            reason=f"Maximum open positions reached ({count}/{limit})",
            warning=f"Opening position {count + 1} exceeds the limit of {limit}",
            current_risk=Decimal(count),
            max_risk=Decimal(limit),
        )

    def _holding_risk(self, holding: Holding) -> Decimal:
        stop = holding.stop_loss
        if stop is None:
            stop = holding.average_price * (1 - self.settings.default_stop_loss_width)
        return max((holding.average_price - stop) * holding.quantity, Decimal("0"))

    def _check_portfolio_risk(
        self,
        snapshot: RiskSnapshot,
        quantity: Decimal,
        price: Decimal,
        stop_loss: Optional[Decimal],
        portfolio_value: Decimal,
    ) -> Optional[RiskViolation]:
        open_risk = sum((self._holding_risk(h) for h in snapshot.holdings.values()), Decimal("0"))
        new_risk = max((price - stop_loss) * quantity, Decimal("0")) if stop_loss is not None else Decimal("0")
        ratio = (open_risk + new_risk) / portfolio_value
        limit = self.settings.max_portfolio_risk
        if ratio <= limit:
            return None
        return RiskViolation(
            check="portfolio_risk",
            reason=f"Total portfolio risk {_pct(ratio)} exceeds maximum {_pct(limit)}",
            warning=f"Portfolio risk would reach {_pct(ratio)}",
            current_risk=ratio,
            max_risk=limit,
        )

    def _check_daily_loss(
        self, snapshot: RiskSnapshot, portfolio_value: Decimal
    ) -> Optional[RiskViolation]:
        loss = realized_loss_since(snapshot.trades, start_of_day(snapshot.now))
        ratio = loss / portfolio_value
        limit = self.settings.max_daily_loss
        if ratio <= limit:
            return None
        return RiskViolation(
            check="daily_loss",
            reason=f"Daily loss {_pct(ratio)} exceeds limit {_pct(limit)}",
            warning=f"Daily loss already at {_pct(ratio)}",
            current_risk=ratio,
            max_risk=limit,
        )

    def _check_cooldown(self, snapshot: RiskSnapshot, symbol: str) -> Optional[RiskViolation]:
        interval = timedelta(minutes=self.settings.min_trade_interval_minutes)
        last = max(
            (t.executed_at for t in snapshot.trades if t.symbol == symbol),
            default=None,
        )
        if last is None:
            return None
        elapsed = snapshot.now - last
        if elapsed >= interval:
            return None
        minutes = Decimal(int(elapsed.total_seconds() // 60))
        return RiskViolation(
            check="cooldown",
            reason=(
                f"Last {symbol} trade was {minutes} min ago; "
                f"wait {self.settings.min_trade_interval_minutes} min between trades"
            ),
            warning=f"Traded {symbol} {minutes} min ago",
            current_risk=minutes,
            max_risk=Decimal(self.settings.min_trade_interval_minutes),
        )

    def _check_correlation(self, snapshot: RiskSnapshot, symbol: str) -> Optional[RiskViolation]:
        if symbol in snapshot.holdings or not snapshot.holdings:
            return None
        correlation = max_correlation(symbol, snapshot.holdings.keys())
        limit = self.settings.max_position_correlation
        if correlation <= limit:
            return None
        return RiskViolation(
            check="correlation",
            reason=f"{symbol} is highly correlated ({correlation}) with an existing position",
            warning=f"High correlation ({correlation}) with existing positions",
            current_risk=correlation,
            max_risk=limit,
        )

    # ------------------------------------------------------------------
    # Sizing and exposure
    # ------------------------------------------------------------------

    async def size_position(
        self,
        symbol: str,
        entry: Decimal,
        stop: Decimal,
        risk_fraction: Decimal,
        portfolio: Optional[Portfolio] = None,
    ) -> Decimal:
        """Size a position so that hitting the stop loses ``risk_fraction``.

        The result is capped by the maximum position size and rounded down to
        the configured quantity precision.

        Args:
            symbol: Coin symbol (for logging).
            entry: Expected entry price.
            stop: Stop-loss level.
            risk_fraction: Fraction of portfolio value to risk.
            portfolio: Priced portfolio; fetched if omitted.

        Returns:
            Quantity to buy, or 0 when the stop is not below the entry.
        """
        if stop >= entry:
            return Decimal("0")

        if portfolio is None:
            portfolio = await self._portfolio_reader.get_portfolio()
        value = portfolio.total_value
        if value <= 0:
            return Decimal("0")

        by_risk = value * risk_fraction / (entry - stop)
        cap = value * self.settings.max_position_size / entry
        step = Decimal(1).scaleb(-self.settings.quantity_precision)
        quantity = min(by_risk, cap).quantize(step, rounding=ROUND_DOWN)

        logger.debug(f"Sized {symbol}: risk-based {by_risk:.8f}, cap {cap:.8f} -> {quantity}")
        return max(quantity, Decimal("0"))

    async def should_halt_all_automated_buying(self, now: Optional[datetime] = None) -> HaltStatus:
        """Circuit breaker for automated BUYs.

        Halts when today's realized loss reaches the daily limit or the
        drawdown from starting capital exceeds the maximum. Reports halted
        when the inputs cannot be gathered.
        """
        try:
            snapshot = await self.build_snapshot(now)
        except Exception as e:
            logger.error(f"Circuit breaker check failed, halting automated buying: {e}")
            return HaltStatus(halted=True, reason=f"Risk check unavailable: {e}")

        portfolio = snapshot.portfolio
        value = portfolio.total_value
        if value <= 0:
            return HaltStatus(halted=True, reason="Portfolio value is zero or negative")

        loss_ratio = realized_loss_since(snapshot.trades, start_of_day(snapshot.now)) / value
        if loss_ratio >= self.settings.max_daily_loss:
            logger.warning(f"Daily loss limit reached ({_pct(loss_ratio)}), halting automated buying")
            return HaltStatus(
                halted=True,
                reason=f"Daily loss limit reached: {_pct(loss_ratio)}",
                current_risk=loss_ratio,
                max_risk=self.settings.max_daily_loss,
            )

        starting = self._portfolio_reader.starting_capital
        drawdown = (starting - value) / starting if starting > 0 else Decimal("0")
        if drawdown > self.settings.max_drawdown:
            logger.warning(f"Max drawdown exceeded ({_pct(drawdown)}), halting automated buying")
            return HaltStatus(
                halted=True,
                reason=f"Maximum drawdown exceeded: {_pct(drawdown)}",
                current_risk=drawdown,
                max_risk=self.settings.max_drawdown,
            )

        return HaltStatus(halted=False, reason="Trading within limits")

    async def calculate_position_risk(
        self,
        symbol: str,
        quantity: Decimal,
        entry: Decimal,
        stop: Optional[Decimal] = None,
    ) -> PositionRisk:
        """Describe the exposure of a position of ``quantity`` at ``entry``."""
        portfolio = await self._portfolio_reader.get_portfolio()
        value = portfolio.total_value
        size = quantity * entry
        potential_loss = max((entry - stop) * quantity, Decimal("0")) if stop is not None else size

        return PositionRisk(
            symbol=symbol,
            position_size=size,
            position_size_percent=size / value * 100 if value > 0 else Decimal("0"),
            stop_loss=stop,
            potential_loss=potential_loss,
            potential_loss_percent=potential_loss / value * 100 if value > 0 else Decimal("0"),
        )

    async def get_risk_exposure(self, now: Optional[datetime] = None) -> RiskExposure:
        """Summarize current portfolio-wide exposure."""
        snapshot = await self.build_snapshot(now)
        value = snapshot.portfolio.total_value
        if value <= 0:
            return RiskExposure(
                portfolio_risk_percent=Decimal("0"),
                daily_loss_percent=Decimal("0"),
                open_positions=len(snapshot.holdings),
                utilization_percent=Decimal("0"),
            )

        open_risk = sum((self._holding_risk(h) for h in snapshot.holdings.values()), Decimal("0"))
        daily_loss = realized_loss_since(snapshot.trades, start_of_day(snapshot.now))
        invested = value - snapshot.portfolio.cash

        return RiskExposure(
            portfolio_risk_percent=open_risk / value * 100,
            daily_loss_percent=daily_loss / value * 100,
            open_positions=len(snapshot.holdings),
            utilization_percent=invested / value * 100,
        )
