#!/usr/bin/env python3
"""
Engine Configuration Module

Contains:
- LoopConfig: Configuration dataclass for the trade loop
- Factory functions for creating loop instances (live and mock)
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional

import config

logger = logging.getLogger(__name__)


@dataclass
class LoopConfig:
    """Configuration for the trade loop"""
    symbol: str = "BTC/USDT"
    base_asset: str = "BTC"
    quote_asset: str = "USDT"
    profit_multiplier: Decimal = Decimal("1.01")
    fallback_quantity: Decimal = Decimal("0")
    buy_commission_rate: Decimal = Decimal("0.001")
    fee_rate_fallback: Decimal = Decimal("0.001")
    min_quote_to_buy: Decimal = Decimal("1")
    tick_interval_ms: int = 3000
    min_samples: int = 4
    bootstrap_delay_ms: int = 0

    @classmethod
    def from_config(cls) -> "LoopConfig":
        """Build from config.py (environment / .env already applied)"""
        return cls(
            symbol=config.get_config('PAIR_SYMBOL'),
            base_asset=config.get_config('BASE_COIN'),
            quote_asset=config.get_config('QUOTE_COIN'),
            profit_multiplier=config.get_config('PROFIT'),
            fallback_quantity=config.get_config('QUANTITY'),
            buy_commission_rate=config.get_config('BUY_COMMISSION_RATE'),
            fee_rate_fallback=config.get_config('FEE_RATE_FALLBACK'),
            min_quote_to_buy=config.get_config('MIN_QUOTE_TO_BUY'),
            tick_interval_ms=config.get_config('SPEED_TRADE'),
            min_samples=config.get_config('SMOOTHING_MIN_SAMPLES'),
            bootstrap_delay_ms=config.get_config('BOOTSTRAP_SAMPLE_DELAY_MS'),
        )


# =================================================================
# FACTORY FUNCTIONS
# =================================================================

def create_trade_loop(exchange, loop_config: Optional[LoopConfig] = None, shutdown=None,
                      sleep=None, on_tick=None):
    """Factory function to create the trade loop with a fresh session"""

    # Import here to avoid circular dependency
    from core.fsm import Session, TradeStateMachine
    from .trade_loop import TradeLoopDriver

    cfg = loop_config or LoopConfig.from_config()

    machine = TradeStateMachine(
        exchange=exchange,
        symbol=cfg.symbol,
        profit_multiplier=cfg.profit_multiplier,
        fallback_quantity=cfg.fallback_quantity,
        buy_commission_rate=cfg.buy_commission_rate,
        min_quote=cfg.min_quote_to_buy,
    )

    return TradeLoopDriver(
        exchange=exchange,
        machine=machine,
        session=Session(symbol=cfg.symbol),
        loop_config=cfg,
        shutdown=shutdown,
        sleep=sleep,
        on_tick=on_tick,
    )


def create_mock_trade_loop(prices: Iterable, balances: Dict[str, Decimal] = None,
                           loop_config: Optional[LoopConfig] = None):
    """Factory function to create a trade loop against MockExchange (no delays)"""

    # Import here to avoid circular dependency
    from adapters.exchange import MockExchange

    cfg = loop_config or LoopConfig()
    exchange = MockExchange(prices={cfg.symbol: prices},
                            balances=balances or {cfg.quote_asset: Decimal("100")})

    return create_trade_loop(exchange, cfg, sleep=lambda seconds: None)
