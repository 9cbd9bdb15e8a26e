"""
Sniper Bot Orchestrator
=======================

Wires every component together and reacts to core events:

1. LaunchMonitor / CopyTradeMonitor (streams) -> launches and copy signals
2. RiskEvaluator -> token safety verdict
3. OrderExecutionEngine -> Jupiter buys/sells
4. PositionManager -> autonomous exits

Event handlers are scheduled as independent tasks so a slow security
check or swap never blocks the stream that produced the event.

Usage:
    bot = SniperBot(load_config("config.json"))
    await bot.initialize()
    await bot.start()
    ...
    await bot.stop()
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Optional, Set

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment

from .config import BotConfig, validate_config
from .core.helpers import mask_api_key, shorten_address
from .errors import ConfigError
from .execution.engine import OrderExecutionEngine
from .execution.router import JupiterClient
from .execution.wallet import WalletManager
from .listeners import CoreListener
from .models import CopyEvent, LaunchCandidate, TradeDirection
from .monitors.copy import CopyTradeMonitor
from .monitors.launch import LaunchMonitor
from .positions import PositionManager
from .risk.evaluator import RiskEvaluator
from .risk.providers import BirdeyeSecurityProvider, DexscreenerMarketProvider

logger = logging.getLogger(__name__)


@dataclass
class BotStats:
    """Session counters"""
    start_time: float = field(default_factory=time.time)
    launches_seen: int = 0
    copy_signals: int = 0
    blacklisted: int = 0
    failed_security: int = 0
    buys_attempted: int = 0
    buys_succeeded: int = 0
    fatal_errors: int = 0

    @property
    def uptime_str(self) -> str:
        secs = int(time.time() - self.start_time)
        hours, remainder = divmod(secs, 3600)
        mins, secs = divmod(remainder, 60)
        return f"{hours:02d}:{mins:02d}:{secs:02d}"

    def to_dict(self) -> dict:
        return {
            'uptime': self.uptime_str,
            'launches_seen': self.launches_seen,
            'copy_signals': self.copy_signals,
            'blacklisted': self.blacklisted,
            'failed_security': self.failed_security,
            'buys_attempted': self.buys_attempted,
            'buys_succeeded': self.buys_succeeded,
            'fatal_errors': self.fatal_errors,
        }


class SniperBot(CoreListener):

    def __init__(self, config: BotConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        self.client: Optional[AsyncClient] = None
        self.wallet: Optional[WalletManager] = None
        self.router: Optional[JupiterClient] = None
        self.engine: Optional[OrderExecutionEngine] = None
        self.evaluator: Optional[RiskEvaluator] = None
        self.launch_monitor: Optional[LaunchMonitor] = None
        self.copy_monitor: Optional[CopyTradeMonitor] = None
        self.position_manager: Optional[PositionManager] = None

        self.is_running = False
        self.stats = BotStats()
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def initialize(self):
        """
        Validate config and build every component.

        Raises:
            ConfigError: required settings missing
            WalletError: configured private key is invalid
        """
        cfg = self.config
        env = cfg.env

        validation = validate_config(cfg)
        for warning in validation.warnings:
            self.logger.warning(f"Config warning: {warning}")
        if not validation.valid:
            for error in validation.errors:
                self.logger.error(f"Config error: {error}")
            raise ConfigError('Invalid configuration. Please check your .env and config.json files.')

        self.logger.info(f"Network: {env.network.upper()}")
        self.logger.info(f"RPC: {mask_api_key(env.rpc_url)}")

        self.client = AsyncClient(env.rpc_url, commitment=Commitment(cfg.advanced.commitment))
        slot = await self.client.get_slot()
        self.logger.info(f"Connected to Solana (slot: {slot.value})")

        self.wallet = WalletManager(self.client, logger=self.logger)
        self.wallet.initialize(env.private_key)
        await self.wallet.log_balance()

        self.router = JupiterClient(env.jupiter_swap_api_url, env.jupiter_api_key, logger=self.logger)
        self.engine = OrderExecutionEngine(
            cfg.trading, cfg.advanced, self.client, self.wallet, self.router, logger=self.logger,
        )

        timeout = cfg.security.provider_timeout_ms / 1000
        self.evaluator = RiskEvaluator(
            cfg.security,
            BirdeyeSecurityProvider(
                env.birdeye_api_url, env.birdeye_api_key,
                requests_per_minute=cfg.security.birdeye_requests_per_minute,
                timeout=timeout, logger=self.logger,
            ),
            DexscreenerMarketProvider(
                env.dexscreener_api_url,
                requests_per_minute=cfg.security.dexscreener_requests_per_minute,
                timeout=timeout, logger=self.logger,
            ),
            whitelist=cfg.whitelist,
            blacklist=cfg.blacklist,
            logger=self.logger,
        )

        self.launch_monitor = LaunchMonitor(cfg.monitoring, env.ws_url, self, logger=self.logger)
        self.copy_monitor = CopyTradeMonitor(
            cfg.copy_trading, cfg.monitoring, env.ws_url, self,
            extra_wallets=env.copy_wallets, logger=self.logger,
        )
        self.position_manager = PositionManager(
            cfg.trading.auto_sell, self.engine, self.router, logger=self.logger,
        )

        self.logger.info("Bot initialization complete!")
        self.log_configuration()

    def log_configuration(self):
        cfg = self.config
        auto = cfg.trading.auto_sell
        line = '=' * 59

        self.logger.info(line)
        self.logger.info("                    CONFIGURATION SUMMARY")
        self.logger.info(line)
        if self.wallet is not None and self.wallet.is_initialized:
            self.logger.info(f"Wallet: {self.wallet.public_address()}")
        self.logger.info(f"Buy Amount: {cfg.trading.buy_amount_sol} SOL")
        self.logger.info(f"Max Buy: {cfg.trading.max_buy_amount_sol} SOL")
        self.logger.info(f"Slippage: {cfg.trading.slippage_bps / 100}%")
        self.logger.info(f"Platforms: {', '.join(cfg.monitoring.platforms)}")
        self.logger.info(f"Security Checks: {'ENABLED' if cfg.security.enabled else 'DISABLED'}")
        self.logger.info(f"Auto-Sell: {'ENABLED' if auto.enabled else 'DISABLED'}")
        if auto.enabled:
            self.logger.info(
                f"  -> First Target: {auto.profit_target_multiplier}x "
                f"(sell {auto.sell_percentage_at_first_target}%)"
            )
            self.logger.info(f"  -> Second Target: {auto.second_profit_target_multiplier}x (sell 100%)")
            self.logger.info(f"  -> Stop Loss: {auto.stop_loss_percent}%")
            self.logger.info(f"  -> Trailing Stop: {auto.trailing_stop_loss_percent}%")
            self.logger.info(f"  -> Time Exit: {auto.time_based_exit_minutes} minutes")
        self.logger.info(f"Copy Trading: {'ENABLED' if cfg.copy_trading.enabled else 'DISABLED'}")
        if cfg.copy_trading.enabled and self.copy_monitor is not None:
            self.logger.info(f"  -> Monitoring {len(self.copy_monitor.get_monitored_wallets())} wallet(s)")
        self.logger.info(line)

    async def start(self):
        if self.is_running:
            self.logger.warning("Bot is already running")
            return
        if self.launch_monitor is None:
            raise RuntimeError("SniperBot.initialize() must be called before start()")

        self.is_running = True
        self.stats = BotStats()
        self.logger.info("Starting Sniper Bot...")

        await self.launch_monitor.start()
        if self.config.copy_trading.enabled:
            await self.copy_monitor.start()
        await self.position_manager.start()

        self.logger.info("Bot is now running and monitoring for opportunities!")

    async def stop(self):
        self.logger.info("Shutting down...")
        self.is_running = False

        for component in (self.launch_monitor, self.copy_monitor, self.position_manager):
            if component is not None:
                await component.stop()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self.engine is not None:
            positions = self.engine.get_positions()
            if positions:
                self.logger.warning(
                    f"You have {len(positions)} open position(s). Consider selling before shutdown."
                )
                for p in positions:
                    self.logger.info(f"  -> {shorten_address(p.mint)}: {p.entry_amount_sol} SOL")
            self.logger.info(f"Session P&L: {self.engine.get_total_pnl():+.4f} SOL")

        self.logger.info(f"Session stats: {self.stats.to_dict()}")

        if self.evaluator is not None:
            await self.evaluator.close()
        if self.router is not None:
            await self.router.close()
        if self.client is not None:
            await self.client.close()

        self.logger.info("Goodbye!")

    # ------------------------------------------------------------------
    # CoreListener
    # ------------------------------------------------------------------

    def on_launch_detected(self, candidate: LaunchCandidate) -> None:
        self._spawn(self.handle_launch(candidate))

    def on_copy_trade_detected(self, event: CopyEvent) -> None:
        self._spawn(self.handle_copy_trade(event))

    def on_fatal_error(self, error: Exception) -> None:
        self.stats.fatal_errors += 1
        self.logger.error(f"Monitor error: {error}")
        self.logger.error("Stream failed to reconnect. Other components keep running; consider restarting the bot.")

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # handlers
    # ------------------------------------------------------------------

    async def handle_launch(self, candidate: LaunchCandidate) -> bool:
        """Blacklist -> risk verdict -> buy. Returns True when a buy succeeded."""
        mint, creator = candidate.mint, candidate.creator
        self.stats.launches_seen += 1

        try:
            if self.evaluator.is_blacklisted(mint, creator):
                self.stats.blacklisted += 1
                self.logger.info(f"Token {shorten_address(mint)} or its creator is blacklisted. Skipping.")
                return False

            whitelisted = self.evaluator.is_whitelisted(mint, creator)
            if whitelisted:
                self.logger.info(f"Token {shorten_address(mint)} is whitelisted. Skipping security checks.")
            elif self.config.security.enabled:
                verdict = await self.evaluator.evaluate(mint)
                if not verdict.passed:
                    self.stats.failed_security += 1
                    self.logger.warning(
                        f"Security check failed for {shorten_address(mint)} "
                        f"score={verdict.score}/{verdict.max_score} risks={list(verdict.risks)}"
                    )
                    return False

            self.logger.info(f"Attempting to buy {shorten_address(mint)} from {candidate.venue.value}")
            return await self._buy(mint)

        except Exception as e:
            self.logger.error(f"Error handling launch {mint}: {e}")
            return False

    async def handle_copy_trade(self, event: CopyEvent) -> bool:
        cfg = self.config.copy_trading
        mint = event.mint
        self.stats.copy_signals += 1
        self.logger.info(
            f"Copy trade signal from {shorten_address(event.wallet)}: "
            f"{event.direction.value} {shorten_address(mint)}"
        )

        if event.direction != TradeDirection.BUY:
            self.logger.info("Only copying buy trades. Skipping.")
            return False

        try:
            if self.evaluator.is_blacklisted(mint):
                self.stats.blacklisted += 1
                self.logger.info(f"Token {shorten_address(mint)} is blacklisted. Skipping.")
                return False

            if cfg.delay_ms > 0:
                await asyncio.sleep(cfg.delay_ms / 1000)

            if cfg.require_security_check and not self.evaluator.is_whitelisted(mint):
                verdict = await self.evaluator.evaluate(mint)
                if not verdict.passed:
                    self.stats.failed_security += 1
                    self.logger.warning(f"Security check failed for copied trade: {shorten_address(mint)}")
                    return False

            amount = min(
                cfg.max_copy_amount_sol,
                self.config.trading.buy_amount_sol * (cfg.copy_percentage / 100),
            )
            return await self._buy(mint, amount)

        except Exception as e:
            self.logger.error(f"Copy trade error for {mint}: {e}")
            return False

    async def _buy(self, mint: str, amount_sol: Optional[float] = None) -> bool:
        self.stats.buys_attempted += 1
        result = await self.engine.buy(mint, amount_sol)
        if result.success:
            self.stats.buys_succeeded += 1
            self.logger.info(
                f"Successfully bought {shorten_address(mint)} "
                f"sig={shorten_address(result.signature, 8)} tokens={result.output_amount}"
            )
        else:
            self.logger.error(f"Failed to buy {shorten_address(mint)}: {result.error}")
        return result.success

    def get_stats(self) -> dict:
        stats = {'bot': self.stats.to_dict()}
        if self.engine is not None:
            stats['engine'] = self.engine.get_stats()
        if self.evaluator is not None:
            stats['risk'] = self.evaluator.get_stats()
        if self.launch_monitor is not None:
            stats['launch_monitor'] = self.launch_monitor.get_stats()
        if self.copy_monitor is not None:
            stats['copy_monitor'] = self.copy_monitor.get_stats()
        if self.position_manager is not None:
            stats['positions'] = self.position_manager.get_stats()
        return stats
