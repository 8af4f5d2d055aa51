"""
Trading Engine Package

- trade_loop.py: TradeLoopDriver (bootstrap + steady-state loop)
- engine_config.py: Configuration and factory functions
"""

from .engine_config import LoopConfig, create_mock_trade_loop, create_trade_loop
from .trade_loop import TradeLoopDriver

__all__ = [
    'TradeLoopDriver',
    'LoopConfig',
    'create_trade_loop',
    'create_mock_trade_loop',
]
