"""
Sniper - Solana Launch Sniper & Copy Trading Core
=================================================

Detects new token launches (pump.fun, PumpSwap, Raydium) and trades of
tracked wallets from a Helius transaction stream, scores each token
against Birdeye / Dexscreener data, buys through Jupiter and manages
exits (profit targets, time exit, stop loss, trailing stop).

Usage:
    from sniper import SniperBot, load_config

    bot = SniperBot(load_config("config.json"))
    await bot.initialize()
    await bot.start()
"""

# Configuration
from .config import (
    BotConfig,
    TradingConfig,
    AutoSellConfig,
    SecurityConfig,
    MonitoringConfig,
    CopyTradingConfig,
    DEFAULT_CONFIG,
    load_config,
    validate_config,
)

# Data models
from .models import (
    Venue,
    TradeDirection,
    StreamEvent,
    LaunchCandidate,
    CopyEvent,
    RiskVerdict,
    Position,
    TradeRecord,
    BuyResult,
    SellResult,
    ExitDecision,
)

# Errors
from .errors import (
    SniperError,
    ConfigError,
    ValidationError,
    RoutingError,
    TransactionFailedError,
    WalletError,
    StreamConnectError,
    ReconnectExhaustedError,
)

# Components
from .listeners import CoreListener
from .stream import EventStreamClient
from .detectors import LaunchDetector, SwapDetector
from .monitors import LaunchMonitor, CopyTradeMonitor
from .risk import RiskEvaluator
from .execution import OrderExecutionEngine, JupiterClient, WalletManager
from .positions import PositionManager
from .orchestrator import SniperBot

__version__ = "1.0.0"

__all__ = [
    # Config
    'BotConfig', 'TradingConfig', 'AutoSellConfig', 'SecurityConfig',
    'MonitoringConfig', 'CopyTradingConfig', 'DEFAULT_CONFIG',
    'load_config', 'validate_config',

    # Models
    'Venue', 'TradeDirection', 'StreamEvent', 'LaunchCandidate', 'CopyEvent',
    'RiskVerdict', 'Position', 'TradeRecord', 'BuyResult', 'SellResult',
    'ExitDecision',

    # Errors
    'SniperError', 'ConfigError', 'ValidationError', 'RoutingError',
    'TransactionFailedError', 'WalletError', 'StreamConnectError',
    'ReconnectExhaustedError',

    # Components
    'CoreListener', 'EventStreamClient', 'LaunchDetector', 'SwapDetector',
    'LaunchMonitor', 'CopyTradeMonitor', 'RiskEvaluator',
    'OrderExecutionEngine', 'JupiterClient', 'WalletManager',
    'PositionManager', 'SniperBot',
]
