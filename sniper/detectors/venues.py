"""
Venue matchers for pump.fun, PumpSwap and Raydium AMM v4.

Account positions follow each program's create/initialize instruction
layout. They are coupled to the on-chain programs and need revisiting
whenever a program changes its instruction accounts.
"""
from typing import Optional

from sniper.core.constants import KNOWN_MINTS, PROGRAM_IDS
from sniper.models import LaunchCandidate, StreamEvent, Venue
from .base import VenueMatcher

_BASE_MINTS = frozenset(KNOWN_MINTS.values())
_TOKEN_PROGRAMS = frozenset((PROGRAM_IDS['TOKEN_PROGRAM'], PROGRAM_IDS['TOKEN_2022']))


class PumpFunMatcher(VenueMatcher):
    """Bonding-curve token creation: [creator, mint, ...]"""

    venue = Venue.PUMP_FUN
    program_id = PROGRAM_IDS['PUMP_FUN']
    log_markers = (
        'Program log: Instruction: InitializeMint2',
        'Program log: Instruction: Create',
    )

    def extract(self, event: StreamEvent) -> Optional[LaunchCandidate]:
        mint = event.key_at(1)
        if not mint:
            return None
        return LaunchCandidate(
            venue=self.venue,
            mint=mint,
            creator=event.key_at(0),
            signature=event.signature,
            metadata={
                'source': 'websocket',
                'logs': [line for line in event.logs if 'Program log:' in line],
            },
        )


class PumpSwapMatcher(VenueMatcher):
    """Pool created on migration from the bonding curve: [creator, pool, mint, ...]"""

    venue = Venue.PUMP_SWAP
    program_id = PROGRAM_IDS['PUMP_SWAP']
    log_markers = (
        'create_pool',
        'Program log: Instruction: Initialize',
    )

    def matches(self, event: StreamEvent) -> bool:
        # "Initialize" is generic; the program must actually be involved
        return super().matches(event) and self.program_id in event.account_keys

    def extract(self, event: StreamEvent) -> Optional[LaunchCandidate]:
        mint = event.key_at(2)
        if not mint:
            return None
        return LaunchCandidate(
            venue=self.venue,
            mint=mint,
            creator=event.key_at(0),
            signature=event.signature,
            pool_id=event.key_at(1),
            metadata={'source': 'websocket', 'migrated_from_pump_fun': True},
        )


class RaydiumMatcher(VenueMatcher):
    """
    AMM v4 ``initialize2``.

    The AMM id sits at accounts[4] and the pool creator at accounts[17].
    The traded mint is taken from the post token balances: the first mint
    that is not a base currency (SOL/USDC/USDT); the quote is the next
    distinct mint.
    """

    venue = Venue.RAYDIUM
    program_id = PROGRAM_IDS['RAYDIUM_AMM_V4']
    log_markers = (
        'initialize2: InitializeInstruction2',
        'Program log: Instruction: Initialize2',
    )

    AMM_ID_INDEX = 4
    CREATOR_INDEX = 17

    def extract(self, event: StreamEvent) -> Optional[LaunchCandidate]:
        amm_id = event.key_at(self.AMM_ID_INDEX)
        base_mint = None
        quote_mint = None

        for balance in event.post_token_balances:
            mint = balance.mint
            if not mint or mint in _TOKEN_PROGRAMS:
                continue
            if base_mint is None and mint not in _BASE_MINTS:
                base_mint = mint
            elif quote_mint is None and mint != base_mint:
                quote_mint = mint

        if not amm_id or not base_mint:
            return None

        return LaunchCandidate(
            venue=self.venue,
            mint=base_mint,
            creator=event.key_at(self.CREATOR_INDEX) or event.key_at(0),
            signature=event.signature,
            pool_id=amm_id,
            quote_mint=quote_mint,
            metadata={'source': 'websocket', 'pool_type': 'AMM_V4'},
        )


# Fixed evaluation order: the first matching venue wins
DEFAULT_MATCHERS = (PumpFunMatcher, PumpSwapMatcher, RaydiumMatcher)
