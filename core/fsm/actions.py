#!/usr/bin/env python3
"""
Action functions executed once a tick's status is settled.

Handler signature: handler(session, ctx, machine) -> Optional[OrderResult]

- START/WAIT/HOLD never place orders.
- SELL/BUY place one market order and branch on the OrderResult: targets,
  counters and in_trade only change on success, so a failed order leaves the
  session exactly as it was and the next tick retries the same transition.
"""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from core.event_schemas import TargetUpdate, log_event
from core.fsm.events import EventType, create_trade_event
from core.fsm.phases import Status
from core.fsm.results import OrderResult
from core.fsm.state import Session, TradingContext, set_status
from core.fsm.transitions import start_posture
from services.quantize import q_amount
from services.targets import decimals_of

if TYPE_CHECKING:
    from core.fsm.machine import TradeStateMachine

logger = logging.getLogger(__name__)

# Used when the exchange's LOT_SIZE step is unknown this tick
DEFAULT_STEP_SIZE = Decimal("0.00000001")


def sell_quantity(base_balance: Decimal, step_size: Optional[Decimal], fallback: Decimal) -> Decimal:
    """Full base balance floored to the step size; fallback when nothing is reported."""
    if base_balance and base_balance > 0:
        return q_amount(base_balance, step_size or DEFAULT_STEP_SIZE)
    return fallback


def buy_quantity(quote_balance: Decimal, price: Decimal, commission_rate: Decimal,
                 step_size: Optional[Decimal]) -> Decimal:
    """Base quantity the full quote balance buys after the commission haircut."""
    if quote_balance <= 0 or price <= 0:
        return Decimal("0")
    raw = quote_balance * (1 - commission_rate) / price
    return q_amount(raw, step_size or DEFAULT_STEP_SIZE)


def action_start(session: Session, ctx: TradingContext, machine: "TradeStateMachine") -> None:
    """Transition: START → BUY (quote held) or SELL (base held)"""
    logger.info(
        f"Waiting best price for buying. Target price for buying is {session.buy_target}, "
        f"but current price per token is {ctx.current_price}"
    )
    posture, in_trade = start_posture(ctx.quote_balance, machine.min_quote)
    session.in_trade = in_trade
    set_status(session, posture, note=f"start_posture quote={ctx.quote_balance}")


def action_wait(session: Session, ctx: TradingContext, machine: "TradeStateMachine") -> None:
    """WAIT: flat, no order"""
    session.in_trade = False
    logger.info(
        f"Waiting best price for buying. Target price for buying is {session.buy_target}, "
        f"but current price per token is {ctx.current_price}"
    )


def action_hold(session: Session, ctx: TradingContext, machine: "TradeStateMachine") -> None:
    """HOLD: in position, no order"""
    session.in_trade = True
    logger.info(
        f"Holding best price for selling. Target price for selling is {session.sell_target}, "
        f"but current price per token is {ctx.current_price}"
    )


def action_sell(session: Session, ctx: TradingContext, machine: "TradeStateMachine") -> OrderResult:
    """SELL: market sell of the full base balance, then re-target"""
    quantity = sell_quantity(ctx.base_balance, ctx.step_size, machine.fallback_quantity)
    result = machine.submit_order(session, ctx, "SELL", quantity)
    if not result.is_ok:
        return result

    executed = result.executed_price(ctx.current_price)
    session.sell_target = machine.calculator.sell_for(
        executed, ctx.sell_fee_rate, precision=decimals_of(ctx.current_price)
    )
    session.successful_trades += 1
    session.in_trade = False

    logger.info(f"Sold {result.quantity} coins for {executed} per one coin",
                extra=create_trade_event(EventType.TRADE_CLOSED, session.symbol, "SELL", result.quantity, executed,
                                         order_id=result.order_id,
                                         successful_trades=session.successful_trades))
    log_event(logger, "target_update", TargetUpdate(
        symbol=session.symbol,
        reason="sell_filled",
        reference_price=executed,
        sell_target=session.sell_target,
        buy_target=session.buy_target,
        fee_rate=ctx.sell_fee_rate,
        profit_multiplier=machine.calculator.profit_multiplier,
    ))
    return result


def action_buy(session: Session, ctx: TradingContext, machine: "TradeStateMachine") -> OrderResult:
    """BUY: market buy with the full quote balance, then re-target and HOLD"""
    quantity = buy_quantity(ctx.quote_balance, ctx.current_price, machine.buy_commission_rate, ctx.step_size)
    result = machine.submit_order(session, ctx, "BUY", quantity)
    if not result.is_ok:
        return result

    executed = result.executed_price(ctx.current_price)
    session.buy_target = machine.calculator.buy_for(
        executed, ctx.buy_fee_rate, precision=decimals_of(ctx.current_price)
    )
    session.in_trade = True
    # Skip wait/sell evaluation right after a fill
    set_status(session, Status.HOLD, note=f"bought order={result.order_id}")

    logger.info(f"Purchased {result.quantity} coins for {executed} per one coin",
                extra=create_trade_event(EventType.TRADE_OPENED, session.symbol, "BUY", result.quantity, executed,
                                         order_id=result.order_id,
                                         quote_spent=str(ctx.quote_balance)))
    log_event(logger, "target_update", TargetUpdate(
        symbol=session.symbol,
        reason="buy_filled",
        reference_price=executed,
        sell_target=session.sell_target,
        buy_target=session.buy_target,
        fee_rate=ctx.buy_fee_rate,
        profit_multiplier=machine.calculator.profit_multiplier,
    ))
    return result


DEFAULT_HANDLERS = {
    Status.START: action_start,
    Status.WAIT: action_wait,
    Status.HOLD: action_hold,
    Status.SELL: action_sell,
    Status.BUY: action_buy,
}
