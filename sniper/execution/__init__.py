"""
Execution - swap routing, wallet, positions and the order engine.
"""
from .router import JupiterClient
from .wallet import WalletManager
from .book import PositionBook
from .engine import OrderExecutionEngine, EngineStats

__all__ = [
    'JupiterClient',
    'WalletManager',
    'PositionBook',
    'OrderExecutionEngine', 'EngineStats',
]
