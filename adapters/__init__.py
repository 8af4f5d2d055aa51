"""
Adapters Package für externe Abhängigkeiten
"""

from .exchange import CcxtExchangeAdapter, ExchangeInterface, FeeRates, MockExchange, TradingRules

__all__ = [
    'ExchangeInterface',
    'CcxtExchangeAdapter',
    'MockExchange',
    'TradingRules',
    'FeeRates',
]
