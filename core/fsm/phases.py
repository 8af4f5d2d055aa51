"""
Status Definitions for the Trade FSM

Each status is one posture of the single-pair trading cycle.
Every status is reachable from every other; there is no terminal status.
"""

from enum import Enum


class Status(str, Enum):
    """
    Trade FSM Statuses

    Lifecycle Flow:
    START → BUY → HOLD → SELL → WAIT → BUY → HOLD → ...
    START → SELL (base asset already held)
    """

    START = "start"
    """
    First tick after bootstrap.
    Actions: Pick initial posture from the quote balance. No order.
    Next: BUY (quote held) or SELL (base held)
    """

    WAIT = "wait"
    """
    Flat, waiting for the price to fall to the buy target.
    Actions: none, in_trade forced to False.
    """

    HOLD = "hold"
    """
    Holding base asset, waiting for the price to rise to the sell target.
    Actions: none, in_trade forced to True.
    """

    SELL = "sell"
    """
    Sell the full base balance at market.
    Next: WAIT/BUY on following ticks (SELL again if the order failed)
    """

    BUY = "buy"
    """
    Buy with the full quote balance at market.
    Next: HOLD (forced after a successful fill)
    """


class Action(str, Enum):
    """Order action emitted for a tick."""

    NONE = "none"
    BUY = "buy"
    SELL = "sell"

