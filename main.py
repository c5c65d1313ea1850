# main.py
"""Main entry point for the crypto paper-trading autopilot."""
import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from src.approvals import ApprovalQueueProcessor
from src.config.settings import Settings
from src.config.trading_config import TradingConfigProvider, YamlTradingConfigProvider
from src.execution import TradeExecutor
from src.execution.manual_trading import ManualTradeDesk
from src.journal import JournalManager
from src.lifecycle import RecommendationProcessor
from src.market_data import PriceFeed, RateLimiter, YFinancePriceFeed
from src.monitor import PositionMonitor
from src.orchestrator.trading_orchestrator import TradingOrchestrator
from src.portfolio import PortfolioReader
from src.risk import RiskValidator
from src.storage import TradingStateStore


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

CONFIG_PATH = Path("config/settings.yaml")


@dataclass
class Components:
    """Wired application components."""

    store: TradingStateStore
    price_feed: PriceFeed
    portfolio_reader: PortfolioReader
    risk_validator: RiskValidator
    executor: TradeExecutor
    journal: JournalManager
    approvals: ApprovalQueueProcessor
    recommendation_processor: RecommendationProcessor
    position_monitor: PositionMonitor
    manual_desk: ManualTradeDesk
    config_provider: TradingConfigProvider


def print_startup_banner(settings: Settings) -> None:
    """Print system startup banner."""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.system.name}")
    logger.info(f"Mode: {settings.system.mode}")
    logger.info(f"Version: {settings.system.version}")
    logger.info("=" * 60)


def load_and_validate_config(config_path: Path = CONFIG_PATH) -> Settings:
    """Load and validate configuration.

    Returns:
        Settings object loaded from YAML.

    Raises:
        SystemExit: If the config file is missing or cannot be parsed.
    """
    load_dotenv()
    logger.info("✓ Loaded environment variables")

    if not config_path.exists():
        logger.error(f"{config_path} not found")
        sys.exit(1)

    try:
        settings = Settings.from_yaml(config_path)
        logger.info(f"✓ Settings loaded from {config_path}")
    except Exception as e:
        logger.error(f"Failed to parse {config_path}: {e}")
        sys.exit(1)

    return settings


def create_price_feed(settings: Settings) -> PriceFeed:
    """Create the yfinance price feed with rate limiting and retries."""
    market_data = settings.market_data
    return YFinancePriceFeed(
        quote_currency=market_data.quote_currency,
        rate_limiter=RateLimiter(market_data.requests_per_minute),
        default_slippage=settings.execution.default_slippage,
        order_book_depth=market_data.order_book_depth,
        max_retries=market_data.max_retries,
        initial_delay=market_data.initial_delay_seconds,
        max_delay=market_data.max_delay_seconds,
        backoff_multiplier=market_data.backoff_multiplier,
    )


def build_components(
    settings: Settings,
    price_feed: PriceFeed | None = None,
    config_provider: TradingConfigProvider | None = None,
    config_path: Path = CONFIG_PATH,
) -> Components:
    """Wire the trading core.

    Args:
        settings: Loaded settings object.
        price_feed: Price source. Defaults to the yfinance feed.
        config_provider: Trading configuration source. Defaults to re-reading
            the ``trading`` section of ``config_path`` on every cycle.
        config_path: Settings file used by the default config provider.

    Returns:
        Components with every part wired together.
    """
    starting_capital = settings.portfolio.starting_capital
    store = TradingStateStore(settings.storage.data_dir, starting_capital)
    price_feed = price_feed or create_price_feed(settings)
    config_provider = config_provider or YamlTradingConfigProvider(config_path)

    portfolio_reader = PortfolioReader(store, price_feed, starting_capital)
    risk_validator = RiskValidator(portfolio_reader, store, settings.risk)
    executor = TradeExecutor(store, price_feed, settings.execution)
    journal = JournalManager(store)
    approvals = ApprovalQueueProcessor(store, executor, journal, settings.lifecycle)
    recommendation_processor = RecommendationProcessor(
        store=store,
        risk_validator=risk_validator,
        executor=executor,
        approvals=approvals,
        journal=journal,
        settings=settings.lifecycle,
    )
    position_monitor = PositionMonitor(store, price_feed, executor, journal, settings.monitor)
    manual_desk = ManualTradeDesk(executor, risk_validator, journal, price_feed)

    logger.info(f"✓ Trading core initialized (data dir: {settings.storage.data_dir})")

    return Components(
        store=store,
        price_feed=price_feed,
        portfolio_reader=portfolio_reader,
        risk_validator=risk_validator,
        executor=executor,
        journal=journal,
        approvals=approvals,
        recommendation_processor=recommendation_processor,
        position_monitor=position_monitor,
        manual_desk=manual_desk,
        config_provider=config_provider,
    )


def initialize_orchestrator(settings: Settings, components: Components) -> TradingOrchestrator:
    """Initialize TradingOrchestrator."""
    orchestrator = TradingOrchestrator(
        recommendation_processor=components.recommendation_processor,
        position_monitor=components.position_monitor,
        config_provider=components.config_provider,
        settings=settings.orchestrator,
    )
    logger.info("✓ TradingOrchestrator initialized")
    return orchestrator


async def run(settings: Settings) -> None:
    """Run the orchestrator until interrupted."""
    components = build_components(settings)
    await components.store.load()

    portfolio = await components.portfolio_reader.get_portfolio()
    logger.info(
        f"✓ Portfolio loaded: cash ${portfolio.cash:,.2f}, "
        f"{len(portfolio.positions)} positions, total ${portfolio.total_value:,.2f}"
    )

    if not settings.orchestrator.enabled:
        logger.info("Orchestrator disabled in settings, exiting")
        return

    orchestrator = initialize_orchestrator(settings, components)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await orchestrator.start()
    try:
        await stop_event.wait()
    finally:
        await orchestrator.stop()


def main() -> None:
    settings = load_and_validate_config()
    print_startup_banner(settings)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
