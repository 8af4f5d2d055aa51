# Services package (targets, quantize, exchange filters, shutdown)

from .exchange_filters import clear_cache, get_filters, parse_market_filters
from .quantize import q_amount, round_half_up, to_decimal
from .shutdown_coordinator import (
    ShutdownCoordinator,
    ShutdownReason,
    ShutdownRequest,
    get_shutdown_coordinator,
)
from .targets import TargetPriceCalculator, buy_target, decimals_of, sell_target

__all__ = [
    'TargetPriceCalculator',
    'sell_target',
    'buy_target',
    'decimals_of',
    'q_amount',
    'round_half_up',
    'to_decimal',
    'parse_market_filters',
    'get_filters',
    'clear_cache',
    'ShutdownCoordinator',
    'ShutdownReason',
    'ShutdownRequest',
    'get_shutdown_coordinator',
]
