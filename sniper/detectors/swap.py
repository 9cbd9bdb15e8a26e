"""
Swap Detector
=============

Infers what a tracked wallet traded from the token balance changes of a
transaction.

For every (account index, mint) pair the change is ``post - pre``; an
entry missing from the post snapshot counts as closed (post = 0). Only
balances owned by a tracked wallet and not denominated in a base
currency (SOL/USDC/USDT) are considered.

The first positive change in balance-entry order is reported as a BUY.
When nothing rose, the first negative change is reported as a SELL.
This can pick the wrong asset in a multi-hop swap; it is a known
simplification, not a "largest swap" heuristic.
"""
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sniper.core.constants import KNOWN_MINTS
from sniper.models import CopyEvent, StreamEvent, TokenBalance, TradeDirection

BalanceChange = Tuple[str, str, float]  # (mint, owner, delta)


class SwapDetector:

    def __init__(self, base_mints: Optional[Iterable[str]] = None):
        self.base_mints: Set[str] = set(base_mints if base_mints is not None else KNOWN_MINTS.values())

    def balance_changes(self, event: StreamEvent) -> List[BalanceChange]:
        """Per-entry balance deltas, in post-snapshot order then pre-only entries."""
        pre: Dict[Tuple[int, str], TokenBalance] = {
            (b.account_index, b.mint): b for b in event.pre_token_balances
        }
        changes: List[BalanceChange] = []
        seen = set()

        for post in event.post_token_balances:
            key = (post.account_index, post.mint)
            seen.add(key)
            before = pre.get(key)
            delta = post.ui_amount - (before.ui_amount if before else 0.0)
            if delta:
                changes.append((post.mint, post.owner or (before.owner if before else ''), delta))

        for key, before in pre.items():
            if key not in seen and before.ui_amount:
                changes.append((before.mint, before.owner, -before.ui_amount))

        return changes

    def detect(self, event: StreamEvent, tracked_wallets: Iterable[str]) -> Optional[CopyEvent]:
        tracked = set(tracked_wallets)
        signer = next((k for k in event.account_keys if k in tracked), None)
        if signer is None:
            return None

        relevant = []
        for mint, owner, delta in self.balance_changes(event):
            if mint in self.base_mints:
                continue
            # balances without an owner field are attributed to the tracked signer
            if owner and owner not in tracked:
                continue
            relevant.append((mint, owner or signer, delta))

        for direction, wanted in ((TradeDirection.BUY, 1), (TradeDirection.SELL, -1)):
            for mint, owner, delta in relevant:
                if delta * wanted > 0:
                    return CopyEvent(
                        wallet=owner,
                        mint=mint,
                        direction=direction,
                        signature=event.signature,
                        amount=abs(delta),
                    )

        return None
