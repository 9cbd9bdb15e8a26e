"""
Core utilities shared by every component.
"""
from .constants import KNOWN_MINTS, PROGRAM_IDS, LAMPORTS_PER_SOL, FEE_BUFFER_SOL
from .helpers import (
    sol_to_lamports,
    lamports_to_sol,
    is_valid_pubkey,
    shorten_address,
    percent_change,
    mask_api_key,
)
from .policies import RetryPolicy, RateLimiter
from .dedup import DedupWindow

__all__ = [
    'KNOWN_MINTS', 'PROGRAM_IDS', 'LAMPORTS_PER_SOL', 'FEE_BUFFER_SOL',
    'sol_to_lamports', 'lamports_to_sol', 'is_valid_pubkey',
    'shorten_address', 'percent_change', 'mask_api_key',
    'RetryPolicy', 'RateLimiter',
    'DedupWindow',
]
