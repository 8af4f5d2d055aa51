#!/usr/bin/env python3
"""
FSM Transition Rules

(status, in_trade, price, sell_target, buy_target) → next status

Pure functions only. Rules are evaluated in priority order and the first
match wins; equality favours SELL over HOLD and BUY over WAIT.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Tuple

from core.fsm.phases import Action, Status

# (in_trade, predicate(price, sell_target, buy_target)) -> status
Rule = Tuple[bool, Callable[[Decimal, Decimal, Decimal], bool], Status]

RULES: List[Rule] = [
    (True, lambda price, sell, buy: price >= sell, Status.SELL),
    (True, lambda price, sell, buy: price <= sell, Status.HOLD),
    (False, lambda price, sell, buy: price <= buy, Status.BUY),
    (False, lambda price, sell, buy: price >= buy, Status.WAIT),
]


@dataclass(frozen=True)
class Decision:
    """Outcome of one tick's decision, before any order is executed."""

    status: Status
    action: Action
    in_trade: bool


def next_status(
    status: Status,
    in_trade: bool,
    price: Decimal,
    sell_target: Decimal,
    buy_target: Decimal,
) -> Status:
    """
    Evaluate the transition rules for one tick.

    START is left untouched; it is resolved by the start posture instead.
    """
    if status == Status.START:
        return status

    for rule_in_trade, predicate, target in RULES:
        if in_trade == rule_in_trade and predicate(price, sell_target, buy_target):
            return target

    # Unreachable for comparable prices: each in_trade branch covers >= and <=
    return status


def start_posture(quote_balance: Decimal, min_quote: Decimal = Decimal("1")) -> Tuple[Status, bool]:
    """
    Initial posture on the first tick.

    Holding at least ``min_quote`` of the quote asset means we plan to buy;
    otherwise the base asset is assumed to be held already.

    Returns:
        (status, in_trade)
    """
    if quote_balance >= min_quote:
        return Status.BUY, False
    return Status.SELL, True


def decide(
    status: Status,
    in_trade: bool,
    price: Decimal,
    sell_target: Decimal,
    buy_target: Decimal,
    quote_balance: Decimal,
    min_quote: Decimal = Decimal("1"),
) -> Decision:
    """
    Full decision for one tick: settled status, order action, in_trade flag.

    The in_trade value is the one the status implies before the order runs;
    BUY/SELL only flip it once their order succeeds.
    """
    settled = next_status(status, in_trade, price, sell_target, buy_target)

    if settled == Status.START:
        posture, posture_in_trade = start_posture(quote_balance, min_quote)
        return Decision(status=posture, action=Action.NONE, in_trade=posture_in_trade)

    if settled == Status.WAIT:
        return Decision(status=settled, action=Action.NONE, in_trade=False)

    if settled == Status.HOLD:
        return Decision(status=settled, action=Action.NONE, in_trade=True)

    if settled == Status.SELL:
        return Decision(status=settled, action=Action.SELL, in_trade=in_trade)

    return Decision(status=settled, action=Action.BUY, in_trade=in_trade)
