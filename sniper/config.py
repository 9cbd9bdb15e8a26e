"""
Sniper Configuration
====================

All trading, risk and monitoring parameters in one place.

Usage:
    from sniper.config import load_config, validate_config

    config = load_config("config.json")
    validation = validate_config(config)
    if not validation.valid:
        ...

The JSON file uses camelCase keys (``buyAmountSOL``, ``autoSell``...);
they are mapped onto the snake_case dataclass fields below. Secrets and
endpoints come from the environment (``.env`` is loaded first).
"""

import json
import os
import re
from dataclasses import dataclass, field, fields, is_dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv

from .core.helpers import mask_api_key
from .errors import ConfigError


# API Endpoints
ENDPOINTS = {
    'JUPITER_SWAP': 'https://api.jup.ag/swap/v1',
    'BIRDEYE': 'https://public-api.birdeye.so',
    'DEXSCREENER': 'https://api.dexscreener.com',
}

PLACEHOLDER_PRIVATE_KEY = 'your_base58_encoded_private_key_here'


@dataclass
class AutoSellConfig:
    """Exit rules evaluated by the position manager."""

    enabled: bool = True
    profit_target_multiplier: float = 2.0           # first target, e.g. 2x
    sell_percentage_at_first_target: float = 50.0   # % sold at first target
    second_profit_target_multiplier: float = 5.0    # sell everything
    stop_loss_percent: float = 30.0                 # -30% from entry
    trailing_stop_loss_percent: float = 20.0        # -20% from peak
    trailing_arm_multiplier: float = 1.1            # peak must exceed entry x 1.1
    time_based_exit_minutes: float = 30.0
    check_interval_ms: int = 5000
    valuation_slippage_bps: int = 100


@dataclass
class TradingConfig:
    """Order sizing and execution parameters."""

    buy_amount_sol: float = 0.1
    max_buy_amount_sol: float = 0.5
    slippage_bps: int = 1500                # 15%
    priority_fee_lamports: int = 100_000    # cap for the priority fee hint
    max_retries: int = 3
    retry_delay_ms: int = 1000
    auto_sell: AutoSellConfig = field(default_factory=AutoSellConfig)


@dataclass
class SecurityChecksConfig:
    honeypot_detection: bool = True
    ownership_renounced: bool = True
    check_freezeable: bool = True
    check_mintable: bool = True
    min_liquidity_usd: float = 5000.0
    max_buy_tax_percent: float = 10.0
    max_sell_tax_percent: float = 10.0


@dataclass
class SecurityConfig:
    """Risk evaluator parameters."""

    enabled: bool = True
    min_score: int = 50
    cache_ttl_ms: int = 60_000
    provider_timeout_ms: int = 10_000
    birdeye_requests_per_minute: int = 10
    dexscreener_requests_per_minute: int = 30
    checks: SecurityChecksConfig = field(default_factory=SecurityChecksConfig)


@dataclass
class MonitoringConfig:
    """Launch stream parameters."""

    platforms: List[str] = field(default_factory=lambda: ['pumpfun', 'raydium'])
    commitment: str = 'processed'
    ping_interval_ms: int = 30_000
    connect_timeout_ms: int = 30_000
    max_reconnect_attempts: int = 10
    reconnect_delay_ms: int = 5000
    dedup_max_size: int = 10_000
    dedup_evict_count: int = 1_000


@dataclass
class CopyTradingConfig:
    enabled: bool = False
    wallets: List[str] = field(default_factory=list)
    copy_buy_only: bool = True
    delay_ms: int = 0
    require_security_check: bool = True
    copy_percentage: float = 100.0
    max_copy_amount_sol: float = 0.1
    dedup_max_size: int = 5_000
    dedup_evict_count: int = 500


@dataclass
class AccessListConfig:
    """Token/creator addresses (used for both whitelist and blacklist)."""

    tokens: List[str] = field(default_factory=list)
    creators: List[str] = field(default_factory=list)


@dataclass
class AdvancedConfig:
    skip_preflight: bool = True
    commitment: str = 'confirmed'
    send_max_retries: int = 2


@dataclass
class LoggingConfig:
    level: str = 'info'
    to_file: bool = False
    log_dir: str = 'logs'
    max_file_size_mb: int = 10


@dataclass
class EnvConfig:
    """Secrets and endpoints resolved from the environment."""

    network: str = 'mainnet'
    private_key: Optional[str] = None
    helius_api_key: Optional[str] = None
    rpc_url: Optional[str] = None
    ws_url: Optional[str] = None
    jupiter_api_key: Optional[str] = None
    jupiter_swap_api_url: str = ENDPOINTS['JUPITER_SWAP']
    birdeye_api_key: Optional[str] = None
    birdeye_api_url: str = ENDPOINTS['BIRDEYE']
    dexscreener_api_url: str = ENDPOINTS['DEXSCREENER']
    copy_wallets: List[str] = field(default_factory=list)

    @property
    def is_devnet(self) -> bool:
        return self.network == 'devnet'

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> 'EnvConfig':
        env = os.environ if environ is None else environ
        network = env.get('NETWORK') or 'mainnet'
        devnet = network == 'devnet'

        return cls(
            network=network,
            private_key=env.get('PRIVATE_KEY') or None,
            helius_api_key=env.get('HELIUS_API_KEY') or None,
            rpc_url=env.get('HELIUS_DEVNET_RPC_URL' if devnet else 'HELIUS_RPC_URL') or None,
            ws_url=env.get('HELIUS_DEVNET_WS_URL' if devnet else 'HELIUS_WS_URL') or None,
            jupiter_api_key=env.get('JUPITER_API_KEY') or None,
            birdeye_api_key=env.get('BIRDEYE_API_KEY') or None,
            copy_wallets=[
                w.strip() for w in (env.get('SMART_MONEY_WALLETS') or '').split(',')
                if w.strip()
            ],
        )


@dataclass
class BotConfig:
    """Master configuration."""

    trading: TradingConfig = field(default_factory=TradingConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    copy_trading: CopyTradingConfig = field(default_factory=CopyTradingConfig)
    whitelist: AccessListConfig = field(default_factory=AccessListConfig)
    blacklist: AccessListConfig = field(default_factory=AccessListConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    env: EnvConfig = field(default_factory=EnvConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'BotConfig':
        return _build(cls, data)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # never serialize secrets
        env = data['env']
        env.pop('private_key', None)
        for key in ('helius_api_key', 'jupiter_api_key', 'birdeye_api_key'):
            if env.get(key):
                env[key] = '***'
        for key in ('rpc_url', 'ws_url'):
            env[key] = mask_api_key(env.get(key) or '') or None
        return data


@dataclass
class ConfigValidation:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _snake(name: str) -> str:
    """``buyAmountSOL`` -> ``buy_amount_sol``, ``minLiquidityUSD`` -> ``min_liquidity_usd``."""
    name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    name = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name)
    return name.lower()


def _build(cls, data: Optional[Mapping[str, Any]]):
    """Recursively build dataclass ``cls`` from a camelCase/snake_case mapping."""
    if not data:
        return cls()
    if not isinstance(data, Mapping):
        raise ConfigError(f"Expected an object for {cls.__name__}, got {type(data).__name__}")

    normalized = {_snake(k): v for k, v in data.items()}
    kwargs = {}
    for f in fields(cls):
        if f.name not in normalized:
            continue
        value = normalized[f.name]
        default = f.default_factory() if callable(f.default_factory) else f.default
        if is_dataclass(default):
            value = _build(type(default), value)
        kwargs[f.name] = value

    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ConfigError(f"Invalid {cls.__name__}: {e}") from e


def load_config(
    path: str = 'config.json',
    environ: Optional[Mapping[str, str]] = None,
) -> BotConfig:
    """
    Load ``config.json`` and merge environment settings.

    Raises:
        ConfigError: file missing or not valid JSON
    """
    if environ is None:
        load_dotenv()

    config_path = Path(path).expanduser()
    try:
        raw = json.loads(config_path.read_text(encoding='utf-8'))
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Configuration file is not valid JSON: {e}") from e

    raw = dict(raw)
    raw.pop('env', None)
    config = BotConfig.from_dict(raw)
    config.env = EnvConfig.from_environ(environ)

    env = os.environ if environ is None else environ
    if env.get('LOG_LEVEL'):
        config.logging.level = env['LOG_LEVEL']
    if env.get('LOG_TO_FILE'):
        config.logging.to_file = env['LOG_TO_FILE'].lower() == 'true'

    return config


def validate_config(config: BotConfig) -> ConfigValidation:
    """Check required settings and flag risky ones."""
    errors: List[str] = []
    warnings: List[str] = []
    env = config.env

    if not env.helius_api_key:
        errors.append('HELIUS_API_KEY is required')
    if not env.rpc_url:
        errors.append('HELIUS_RPC_URL is required')
    if not env.ws_url:
        errors.append('HELIUS_WS_URL is required')

    if not env.jupiter_api_key:
        warnings.append('JUPITER_API_KEY not set - may hit rate limits')
    if not env.birdeye_api_key:
        warnings.append('BIRDEYE_API_KEY not set - security checks will be limited')
    if not env.private_key or env.private_key == PLACEHOLDER_PRIVATE_KEY:
        warnings.append('No private key configured - a new wallet will be generated')

    if config.trading.buy_amount_sol > config.trading.max_buy_amount_sol:
        errors.append('buyAmountSOL cannot exceed maxBuyAmountSOL')
    if config.trading.slippage_bps > 5000:
        warnings.append('High slippage configured (>50%) - you may receive worse prices')

    if config.copy_trading.enabled and not (config.copy_trading.wallets or env.copy_wallets):
        warnings.append('Copy trading enabled but no wallets configured')

    return ConfigValidation(valid=not errors, errors=errors, warnings=warnings)


# Default configuration
DEFAULT_CONFIG = BotConfig()
