"""
Sniper Models - Shared Data Structures
======================================

Data structures passed between the stream, detectors, risk evaluator,
execution engine and position manager.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional, Tuple
import time


class Venue(Enum):
    """On-chain venue where a launch was detected."""
    PUMP_FUN = "pump.fun"
    PUMP_SWAP = "pumpswap"
    RAYDIUM = "raydium"

    @classmethod
    def from_platform(cls, name: str) -> Optional['Venue']:
        """Map a ``monitoring.platforms`` entry to a venue."""
        key = (name or '').strip().lower().replace('.', '').replace('_', '')
        return {
            'pumpfun': cls.PUMP_FUN,
            'pumpswap': cls.PUMP_SWAP,
            'raydium': cls.RAYDIUM,
        }.get(key)


class TradeDirection(Enum):
    BUY = "BUY"
    SELL = "SELL"


class CheckStatus(Enum):
    PASS = "pass"
    FAIL = "fail"
    UNVERIFIED = "unverified"   # required data unavailable


def _key_of(entry: Any) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        return entry.get('pubkey') or ''
    return ''


@dataclass(frozen=True)
class TokenBalance:
    """One pre/post token balance entry of a transaction"""
    account_index: int
    mint: str
    owner: str = ""
    ui_amount: float = 0.0

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> 'TokenBalance':
        ui = data.get('uiTokenAmount') or {}
        amount = ui.get('uiAmount')
        if amount is None:
            amount = ui.get('uiAmountString') or 0
        return cls(
            account_index=int(data.get('accountIndex', -1)),
            mint=data.get('mint') or '',
            owner=data.get('owner') or '',
            ui_amount=float(amount),
        )


@dataclass(frozen=True)
class StreamEvent:
    """Raw transaction payload from the stream (immutable)"""
    signature: str
    account_keys: Tuple[str, ...] = ()
    logs: Tuple[str, ...] = ()
    pre_token_balances: Tuple[TokenBalance, ...] = ()
    post_token_balances: Tuple[TokenBalance, ...] = ()
    received_at: float = field(default_factory=time.time)

    @classmethod
    def from_notification(cls, result: Dict[str, Any]) -> 'StreamEvent':
        """
        Build from the ``params.result`` object of a ``transactionNotification``.

        Account keys arrive either as plain strings or as jsonParsed
        ``{"pubkey": ..., "signer": ..., "writable": ...}`` objects.
        """
        tx = result.get('transaction') or {}
        meta = tx.get('meta') or {}
        message = (tx.get('transaction') or {}).get('message') or {}

        return cls(
            signature=result.get('signature') or '',
            account_keys=tuple(_key_of(k) for k in message.get('accountKeys') or []),
            logs=tuple(meta.get('logMessages') or []),
            pre_token_balances=tuple(
                TokenBalance.from_rpc(b) for b in meta.get('preTokenBalances') or []
            ),
            post_token_balances=tuple(
                TokenBalance.from_rpc(b) for b in meta.get('postTokenBalances') or []
            ),
        )

    def has_log(self, *needles: str) -> bool:
        return any(needle in line for line in self.logs for needle in needles)

    def key_at(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.account_keys):
            return self.account_keys[index] or None
        return None


@dataclass(frozen=True)
class LaunchCandidate:
    """New asset launch detected on a venue"""
    venue: Venue
    mint: str
    creator: Optional[str]
    signature: str
    discovered_at: float = field(default_factory=time.time)
    pool_id: Optional[str] = None
    quote_mint: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'venue': self.venue.value,
            'mint': self.mint,
            'creator': self.creator,
            'signature': self.signature,
            'discovered_at': self.discovered_at,
            'pool_id': self.pool_id,
            'quote_mint': self.quote_mint,
        }


@dataclass(frozen=True)
class CopyEvent:
    """Trade made by a tracked wallet"""
    wallet: str
    mint: str
    direction: TradeDirection
    signature: str
    amount: float = 0.0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            'wallet': self.wallet,
            'mint': self.mint,
            'direction': self.direction.value,
            'signature': self.signature,
            'amount': self.amount,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one risk check"""
    name: str
    status: CheckStatus
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.status == CheckStatus.PASS


@dataclass(frozen=True)
class RiskVerdict:
    """
    Risk evaluation result. Never mutated; a newer verdict supersedes it.

    ``passed`` is only True when no hard risk was found AND the score
    reached the pass threshold.
    """
    mint: str
    score: int
    passed: bool
    risks: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    checks: Dict[str, CheckResult] = field(default_factory=dict)
    snapshots: Dict[str, Any] = field(default_factory=dict)
    max_score: int = 100
    timestamp: float = field(default_factory=time.time)

    def age(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.time()) - self.timestamp

    def to_dict(self) -> dict:
        return {
            'mint': self.mint,
            'score': self.score,
            'max_score': self.max_score,
            'passed': self.passed,
            'risks': list(self.risks),
            'warnings': list(self.warnings),
            'checks': {k: c.status.value for k, c in self.checks.items()},
            'timestamp': self.timestamp,
        }


@dataclass
class Position:
    """
    Open position. One per mint; mutated in place by re-pricing and
    partial sells, removed on full exit.

    ``entry_amount_sol`` is the original cost and ``peak_value`` is kept
    at the original size, so neither shrinks on a partial sell.
    ``size_fraction`` is the share of the original size still held and
    ``current_value`` is the value of that remaining share.
    """
    mint: str
    entry_amount_sol: float
    entry_token_amount: int          # raw token units still held
    entry_time: float
    signature: str = ""
    peak_value: float = 0.0          # SOL, high-water mark at full size
    current_value: float = 0.0       # SOL, last observed
    first_target_hit: bool = False
    size_fraction: float = 1.0

    def __post_init__(self):
        if self.entry_token_amount < 0:
            raise ValueError("entry_token_amount must be >= 0")
        if not 0 < self.size_fraction <= 1:
            raise ValueError("size_fraction must be in (0, 1]")
        if not self.peak_value:
            self.peak_value = self.entry_amount_sol
        if not self.current_value:
            self.current_value = self.entry_amount_sol * self.size_fraction

    @property
    def cost_basis(self) -> float:
        """SOL paid for the tokens still held"""
        return self.entry_amount_sol * self.size_fraction

    @property
    def entry_price(self) -> float:
        """SOL per raw token unit"""
        if self.entry_token_amount <= 0:
            return 0.0
        return self.cost_basis / self.entry_token_amount

    @property
    def multiplier(self) -> float:
        if self.cost_basis <= 0:
            return 0.0
        return self.current_value / self.cost_basis

    @property
    def trailing_reference(self) -> float:
        """Peak scaled to the size still held"""
        return self.peak_value * self.size_fraction

    def observe(self, value: float):
        """Record a new valuation; the peak never decreases."""
        self.current_value = value
        full_size = value / self.size_fraction
        if full_size > self.peak_value:
            self.peak_value = full_size

    def shrink(self, tokens_sold: int, percent: float):
        """Drop sold tokens; peak and original cost stay put."""
        remaining = 1 - percent / 100
        self.entry_token_amount -= tokens_sold
        self.size_fraction *= remaining
        self.current_value *= remaining

    def to_dict(self) -> dict:
        return {
            'mint': self.mint,
            'entry_amount_sol': self.entry_amount_sol,
            'entry_token_amount': self.entry_token_amount,
            'entry_price': self.entry_price,
            'entry_time': self.entry_time,
            'signature': self.signature,
            'peak_value': self.peak_value,
            'current_value': self.current_value,
            'size_fraction': self.size_fraction,
            'cost_basis': self.cost_basis,
            'first_target_hit': self.first_target_hit,
        }


@dataclass(frozen=True)
class TradeRecord:
    """Append-only trade log entry"""
    type: TradeDirection
    mint: str
    amount_sol: float
    token_amount: int
    signature: str
    profit: Optional[float] = None          # SELL only
    profit_percent: Optional[float] = None  # SELL only
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            'type': self.type.value,
            'mint': self.mint,
            'amount_sol': self.amount_sol,
            'token_amount': self.token_amount,
            'profit': self.profit,
            'profit_percent': self.profit_percent,
            'signature': self.signature,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class SwapResult:
    """Confirmed swap"""
    signature: str
    input_amount: int
    output_amount: int
    price_impact: float = 0.0


@dataclass
class BuyResult:
    """Result of a buy (never raised across the API edge)"""
    success: bool
    signature: str = ""
    input_amount: int = 0
    output_amount: int = 0
    position: Optional[Position] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'signature': self.signature,
            'input_amount': self.input_amount,
            'output_amount': self.output_amount,
            'error': self.error,
        }


@dataclass
class SellResult:
    """Result of a sell (never raised across the API edge)"""
    success: bool
    signature: str = ""
    token_amount: int = 0
    sol_received: float = 0.0
    profit: float = 0.0
    profit_percent: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'signature': self.signature,
            'token_amount': self.token_amount,
            'sol_received': self.sol_received,
            'profit': self.profit,
            'profit_percent': self.profit_percent,
            'error': self.error,
        }


@dataclass
class ExitDecision:
    """Decision on whether to exit a position this cycle"""
    should_exit: bool
    reason: Optional[str] = None
    sell_percent: float = 0.0
    multiplier: float = 0.0

    def to_dict(self) -> dict:
        return {
            'should_exit': self.should_exit,
            'reason': self.reason,
            'sell_percent': self.sell_percent,
            'multiplier': self.multiplier,
        }

