"""
Helper Utilities
================

Small conversions and formatting helpers.
"""
import re

from solders.pubkey import Pubkey

from .constants import LAMPORTS_PER_SOL


def sol_to_lamports(sol: float) -> int:
    """Convert SOL to lamports (floored)."""
    return int(sol * LAMPORTS_PER_SOL)


def lamports_to_sol(lamports) -> float:
    return int(lamports) / LAMPORTS_PER_SOL


def is_valid_pubkey(address: str) -> bool:
    """True if ``address`` parses as a base58 Solana public key."""
    if not address or not isinstance(address, str):
        return False
    try:
        Pubkey.from_string(address)
        return True
    except ValueError:
        return False


def shorten_address(address: str, chars: int = 4) -> str:
    if not address:
        return ''
    return f"{address[:chars]}...{address[-chars:]}"


def percent_change(old_value: float, new_value: float) -> float:
    if old_value == 0:
        return 0.0
    return (new_value - old_value) / old_value * 100


def mask_api_key(url: str) -> str:
    """Hide ``api-key=...`` query values before logging a URL."""
    if not url:
        return ''
    return re.sub(r'api-key=[^&]*', 'api-key=***', url)
