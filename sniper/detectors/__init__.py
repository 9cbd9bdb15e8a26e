"""
Detectors - turn raw stream events into launches and copy-trade events.
"""
from .base import VenueMatcher
from .venues import PumpFunMatcher, PumpSwapMatcher, RaydiumMatcher, DEFAULT_MATCHERS
from .launch import LaunchDetector
from .swap import SwapDetector

__all__ = [
    'VenueMatcher',
    'PumpFunMatcher', 'PumpSwapMatcher', 'RaydiumMatcher', 'DEFAULT_MATCHERS',
    'LaunchDetector',
    'SwapDetector',
]
