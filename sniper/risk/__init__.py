"""
Risk - token safety scoring before any buy.
"""
from .checks import CHECKS, RiskCheck, run_checks, transfer_fee_percent
from .providers import BirdeyeSecurityProvider, DexscreenerMarketProvider
from .evaluator import RiskEvaluator

__all__ = [
    'CHECKS', 'RiskCheck', 'run_checks', 'transfer_fee_percent',
    'BirdeyeSecurityProvider', 'DexscreenerMarketProvider',
    'RiskEvaluator',
]
