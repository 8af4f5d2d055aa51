#!/usr/bin/env python3
"""
Exchange Exceptions

Error kinds raised by the exchange collaborator. The decision core decides
per kind whether an error is fatal (price, balance), tolerated (rules, fees)
or converted into an order result (order placement).
"""


class ExchangeError(Exception):
    """
    Base class for all exchange collaborator errors.

    Attributes:
        symbol: Pair or asset symbol the call was made for
        cause: Original exception from the client library, if any
    """

    def __init__(self, message: str, symbol: str = None, cause: Exception = None):
        self.symbol = symbol
        self.cause = cause
        super().__init__(message)


class PriceFetchError(ExchangeError):
    """Current price could not be fetched. Fatal for the tick."""
    pass


class BalanceFetchError(ExchangeError):
    """Free balance of an asset could not be fetched. Fatal for the tick."""
    pass


class RulesFetchError(ExchangeError):
    """Trading rules or fee rates could not be fetched. Advisory data only."""
    pass


class OrderPlacementError(ExchangeError):
    """
    Market order was rejected or could not be submitted.

    Attributes:
        side: "BUY" or "SELL"
        quantity: Quantity that was submitted
    """

    def __init__(self, message: str, symbol: str = None, side: str = None,
                 quantity=None, cause: Exception = None):
        self.side = side
        self.quantity = quantity
        super().__init__(message, symbol=symbol, cause=cause)
