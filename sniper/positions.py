"""
Position Manager
================

Polls every open position on a fixed interval, re-prices it with a
sell-side quote and applies the auto-sell rules. Runs independently of
the event streams.

Exit rules, first match wins, at most one sell per position per cycle:

    second_target   multiplier >= second target             -> sell 100%
    first_target    multiplier >= first target (once)       -> sell configured %
    time_exit       held >= time-based exit window          -> sell 100%
    stop_loss       multiplier <= 1 - stop loss %           -> sell 100%
    trailing_stop   value <= peak x held share x (1 - trailing %)
                    and peak > entry x arm multiplier       -> sell 100%

Multiplier is value over the cost of the share still held. Peak and
entry are both at the original size.

A missing quote skips the position for that cycle. A failure on one
position is logged and never affects the others.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from sniper.config import AutoSellConfig
from sniper.core.constants import KNOWN_MINTS
from sniper.core.helpers import lamports_to_sol, shorten_address
from sniper.execution.engine import OrderExecutionEngine
from sniper.execution.router import JupiterClient
from sniper.models import ExitDecision, Position

logger = logging.getLogger(__name__)


class PositionManager:

    def __init__(
        self,
        config: AutoSellConfig,
        engine: OrderExecutionEngine,
        router: JupiterClient,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.engine = engine
        self.router = router
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock

        self._task: Optional[asyncio.Task] = None
        self._running = False
        self.cycles = 0
        self.exits = 0

    @property
    def interval(self) -> float:
        return self.config.check_interval_ms / 1000

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        if not self.config.enabled:
            self.logger.info("Auto-sell disabled, position manager not started")
            return
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self.run(), name="position-manager")
        self.logger.info(f"Auto-sell monitor started (every {self.interval:.1f}s)")

    async def stop(self):
        self._running = False
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.logger.info("Auto-sell monitor stopped")

    async def run(self):
        while self._running:
            await self.check_positions()
            await asyncio.sleep(self.interval)

    async def check_positions(self) -> List[Optional[ExitDecision]]:
        """One evaluation cycle over all open positions, concurrently."""
        self.cycles += 1
        positions = self.engine.get_positions()
        if not positions:
            return []
        return await asyncio.gather(*(self._evaluate_safely(p) for p in positions))

    async def _evaluate_safely(self, position: Position) -> Optional[ExitDecision]:
        try:
            return await self.evaluate_position(position)
        except Exception as e:
            self.logger.error(f"Auto-sell check failed for {position.mint}: {e}")
            return None

    async def get_position_value(self, position: Position) -> Optional[float]:
        """Current SOL value of the whole holding, None when no quote."""
        if position.entry_token_amount <= 0:
            return None
        try:
            quote = await self.router.get_quote(
                position.mint,
                KNOWN_MINTS['SOL'],
                position.entry_token_amount,
                self.config.valuation_slippage_bps,
            )
            return lamports_to_sol(int(quote['outAmount']))
        except Exception as e:
            self.logger.debug(f"No valuation for {shorten_address(position.mint)}: {e}")
            return None

    def check_exit(self, position: Position, now: Optional[float] = None) -> ExitDecision:
        cfg = self.config
        now = self._clock() if now is None else now
        multiplier = position.multiplier

        if multiplier >= cfg.second_profit_target_multiplier:
            return ExitDecision(True, 'second_target', 100.0, multiplier)

        if multiplier >= cfg.profit_target_multiplier and not position.first_target_hit:
            return ExitDecision(True, 'first_target', cfg.sell_percentage_at_first_target, multiplier)

        if now - position.entry_time >= cfg.time_based_exit_minutes * 60:
            return ExitDecision(True, 'time_exit', 100.0, multiplier)

        if multiplier <= 1 - cfg.stop_loss_percent / 100:
            return ExitDecision(True, 'stop_loss', 100.0, multiplier)

        trailing_floor = position.trailing_reference * (1 - cfg.trailing_stop_loss_percent / 100)
        armed = position.peak_value > position.entry_amount_sol * cfg.trailing_arm_multiplier
        if armed and position.current_value <= trailing_floor:
            return ExitDecision(True, 'trailing_stop', 100.0, multiplier)

        return ExitDecision(False, multiplier=multiplier)

    async def evaluate_position(self, position: Position) -> Optional[ExitDecision]:
        # the position may have been sold since the cycle started
        if self.engine.get_position(position.mint) is not position:
            return None

        value = await self.get_position_value(position)
        if value is None:
            return None

        position.observe(value)
        decision = self.check_exit(position)
        if not decision.should_exit:
            return decision

        self.logger.info(
            f"EXIT {decision.reason} {shorten_address(position.mint)} "
            f"{decision.multiplier:.2f}x sell={decision.sell_percent:g}%"
        )
        result = await self.engine.sell(position.mint, decision.sell_percent)

        if result.success:
            self.exits += 1
            if decision.reason == 'first_target':
                position.first_target_hit = True
        else:
            self.logger.warning(
                f"Exit {decision.reason} failed for {shorten_address(position.mint)}: {result.error}"
            )
        return decision

    def get_stats(self) -> dict:
        return {
            'running': self._running,
            'cycles': self.cycles,
            'exits': self.exits,
            'open_positions': len(self.engine.get_positions()),
        }
