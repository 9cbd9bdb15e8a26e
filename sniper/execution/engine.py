"""
Order Execution Engine
======================

Buys and sells through the Jupiter router; every order goes through
``execute_swap``:

    quote -> build swap -> sign -> submit -> confirm -> inspect on-chain error

``execute_swap`` is wrapped in the retry policy (exponential backoff, last
failure surfaced). Validation happens before any network call and is
never retried.

``buy`` / ``sell`` never raise: they return BuyResult / SellResult with
``success`` and either the result fields or ``error``.

Usage:
    engine = OrderExecutionEngine(config.trading, config.advanced,
                                  rpc_client, wallet, router)
    result = await engine.buy(mint, 0.1)
    if result.success:
        await engine.sell(mint, 50)
"""

import base64
import logging
import math
import time
from dataclasses import dataclass
from typing import List, Optional, Set

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.types import TxOpts
from solders.transaction import VersionedTransaction

from sniper.config import AdvancedConfig, TradingConfig
from sniper.core.constants import FEE_BUFFER_SOL, KNOWN_MINTS
from sniper.core.helpers import (
    is_valid_pubkey, lamports_to_sol, percent_change, shorten_address, sol_to_lamports,
)
from sniper.core.policies import RetryPolicy
from sniper.errors import TransactionFailedError, ValidationError
from sniper.models import (
    BuyResult, Position, SellResult, SwapResult, TradeDirection, TradeRecord,
)
from .book import PositionBook
from .router import JupiterClient
from .wallet import WalletManager

logger = logging.getLogger(__name__)

SOL_MINT = KNOWN_MINTS['SOL']


@dataclass
class EngineStats:
    buys: int = 0
    sells: int = 0
    failed_buys: int = 0
    failed_sells: int = 0
    rejected: int = 0

    def to_dict(self) -> dict:
        return {
            'buys': self.buys,
            'sells': self.sells,
            'failed_buys': self.failed_buys,
            'failed_sells': self.failed_sells,
            'rejected': self.rejected,
        }


class OrderExecutionEngine:

    def __init__(
        self,
        config: TradingConfig,
        advanced: AdvancedConfig,
        client: AsyncClient,
        wallet: WalletManager,
        router: JupiterClient,
        book: Optional[PositionBook] = None,
        retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.advanced = advanced
        self.client = client
        self.wallet = wallet
        self.router = router
        self.book = book or PositionBook()
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=config.max_retries,
            base_delay=config.retry_delay_ms / 1000,
        )
        self.logger = logger or logging.getLogger(__name__)

        self.trade_history: List[TradeRecord] = []
        self.stats = EngineStats()
        self._in_flight: Set[str] = set()

    # ------------------------------------------------------------------
    # swap pipeline
    # ------------------------------------------------------------------

    async def execute_swap(self, input_mint: str, output_mint: str, amount: int) -> SwapResult:
        """
        One attempt: quote, build, sign, submit, confirm.

        Raises:
            RoutingError: no quote / route / swap transaction
            TransactionFailedError: unconfirmed or confirmed with an error
            WalletError: wallet not initialized
        """
        user = self.wallet.public_address()

        quote = await self.router.get_quote(input_mint, output_mint, amount, self.config.slippage_bps)
        swap_tx = await self.router.build_swap(quote, user, self.config.priority_fee_lamports)

        transaction = VersionedTransaction.from_bytes(base64.b64decode(swap_tx))
        signed = self.wallet.sign(transaction)

        sent = await self.client.send_raw_transaction(
            bytes(signed),
            opts=TxOpts(
                skip_preflight=self.advanced.skip_preflight,
                max_retries=self.advanced.send_max_retries,
            ),
        )
        signature = sent.value
        self.logger.debug(f"Transaction sent: {signature}")

        confirmation = await self.client.confirm_transaction(
            signature, Commitment(self.advanced.commitment or 'confirmed')
        )
        statuses = confirmation.value or []
        status = statuses[0] if statuses else None
        if status is None:
            raise TransactionFailedError(f"Transaction not confirmed: {signature}")
        if status.err is not None:
            raise TransactionFailedError(f"Transaction failed: {status.err}")

        return SwapResult(
            signature=str(signature),
            input_amount=int(quote['inAmount']),
            output_amount=int(quote['outAmount']),
            price_impact=float(quote.get('priceImpactPct') or 0),
        )

    # ------------------------------------------------------------------
    # buy
    # ------------------------------------------------------------------

    def _validate_buy(self, mint: str, amount_sol: float):
        if not is_valid_pubkey(mint):
            raise ValidationError(f"Invalid token address: {mint}")
        if amount_sol <= 0:
            raise ValidationError("Buy amount must be positive")
        if amount_sol > self.config.max_buy_amount_sol:
            raise ValidationError(
                f"Buy amount {amount_sol} SOL exceeds max {self.config.max_buy_amount_sol} SOL"
            )
        if mint in self.book:
            raise ValidationError(f"Position already exists for {mint}")
        if mint in self._in_flight:
            raise ValidationError(f"Order already in flight for {mint}")

    async def buy(self, mint: str, amount_sol: Optional[float] = None) -> BuyResult:
        amount = self.config.buy_amount_sol if amount_sol is None else amount_sol

        try:
            self._validate_buy(mint, amount)
        except ValidationError as e:
            self.stats.rejected += 1
            self.logger.warning(f"Buy rejected for {shorten_address(mint)}: {e}")
            return BuyResult(success=False, error=str(e))

        self._in_flight.add(mint)
        try:
            if not await self.wallet.has_sufficient_balance(amount + FEE_BUFFER_SOL):
                self.stats.rejected += 1
                self.logger.warning(f"Buy rejected for {shorten_address(mint)}: insufficient SOL balance")
                return BuyResult(success=False, error='Insufficient SOL balance')

            self.logger.info(f"BUY_INITIATED {shorten_address(mint)} amount={amount} SOL")

            swap = await self.retry_policy.run(
                self.execute_swap, SOL_MINT, mint, sol_to_lamports(amount),
                label=f"buy {shorten_address(mint)}", log=self.logger,
            )

            position = self.book.open(Position(
                mint=mint,
                entry_amount_sol=amount,
                entry_token_amount=swap.output_amount,
                entry_time=time.time(),
                signature=swap.signature,
            ))
            self.trade_history.append(TradeRecord(
                type=TradeDirection.BUY,
                mint=mint,
                amount_sol=amount,
                token_amount=swap.output_amount,
                signature=swap.signature,
            ))
            self.stats.buys += 1

            self.logger.info(
                f"BUY_SUCCESS {shorten_address(mint)} amount={amount} SOL "
                f"tokens={swap.output_amount} sig={shorten_address(swap.signature, 8)}"
            )
            return BuyResult(
                success=True,
                signature=swap.signature,
                input_amount=swap.input_amount,
                output_amount=swap.output_amount,
                position=position,
            )

        except Exception as e:
            self.stats.failed_buys += 1
            self.logger.error(f"Buy failed for {mint}: {e}")
            return BuyResult(success=False, error=str(e))
        finally:
            self._in_flight.discard(mint)

    # ------------------------------------------------------------------
    # sell
    # ------------------------------------------------------------------

    def _validate_sell(self, mint: str, percent: float) -> int:
        """Returns the raw token amount to sell."""
        if not 0 < percent <= 100:
            raise ValidationError(f"Sell percentage must be in (0, 100], got {percent}")
        position = self.book.get(mint)
        if position is None:
            raise ValidationError(f"No position found for {mint}")
        if mint in self._in_flight:
            raise ValidationError(f"Order already in flight for {mint}")

        amount = math.floor(position.entry_token_amount * (percent / 100))
        if amount <= 0:
            raise ValidationError("Sell amount rounds to zero tokens")
        return amount

    async def sell(self, mint: str, percent: float = 100.0) -> SellResult:
        try:
            amount = self._validate_sell(mint, percent)
        except ValidationError as e:
            self.stats.rejected += 1
            self.logger.warning(f"Sell rejected for {shorten_address(mint)}: {e}")
            return SellResult(success=False, error=str(e))

        position = self.book.get(mint)
        self._in_flight.add(mint)
        try:
            self.logger.info(f"SELL_INITIATED {shorten_address(mint)} {percent}% tokens={amount}")

            swap = await self.retry_policy.run(
                self.execute_swap, mint, SOL_MINT, amount,
                label=f"sell {shorten_address(mint)}", log=self.logger,
            )

            sol_received = lamports_to_sol(swap.output_amount)
            cost_basis = position.cost_basis * (percent / 100)
            profit = sol_received - cost_basis
            profit_percent = percent_change(cost_basis, sol_received)

            if percent >= 100:
                self.book.close(mint)
            else:
                self.book.reduce(mint, amount, percent)

            self.trade_history.append(TradeRecord(
                type=TradeDirection.SELL,
                mint=mint,
                amount_sol=sol_received,
                token_amount=amount,
                signature=swap.signature,
                profit=profit,
                profit_percent=profit_percent,
            ))
            self.stats.sells += 1

            self.logger.info(
                f"SELL_SUCCESS {shorten_address(mint)} received={sol_received:.4f} SOL "
                f"profit={profit:.4f} ({profit_percent:.2f}%) sig={shorten_address(swap.signature, 8)}"
            )
            return SellResult(
                success=True,
                signature=swap.signature,
                token_amount=amount,
                sol_received=sol_received,
                profit=profit,
                profit_percent=profit_percent,
            )

        except Exception as e:
            self.stats.failed_sells += 1
            self.logger.error(f"Sell failed for {mint}: {e}")
            return SellResult(success=False, error=str(e))
        finally:
            self._in_flight.discard(mint)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def get_positions(self) -> List[Position]:
        return self.book.all()

    def get_position(self, mint: str) -> Optional[Position]:
        return self.book.get(mint)

    def get_trade_history(self) -> List[TradeRecord]:
        return list(self.trade_history)

    def get_total_pnl(self) -> float:
        """Realized P&L: sum of SELL profits."""
        return sum(t.profit or 0.0 for t in self.trade_history if t.type == TradeDirection.SELL)

    def get_stats(self) -> dict:
        return {
            **self.stats.to_dict(),
            'open_positions': len(self.book),
            'total_pnl': self.get_total_pnl(),
        }
