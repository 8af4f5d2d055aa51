"""
Trade State Machine

Settles the status for a tick and invokes the status handler.
Holds no trading state itself; everything mutable lives on the Session.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from core.event_schemas import OrderAttempt, OrderOutcome, log_event
from core.fsm.actions import DEFAULT_HANDLERS
from core.fsm.exceptions import OrderPlacementError
from core.fsm.phases import Action, Status
from core.fsm.results import OrderErrorKind, OrderResult
from core.fsm.state import Session, TradingContext, set_status
from core.fsm.transitions import decide
from services.targets import TargetPriceCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickOutcome:
    """What one tick did."""
    previous_status: Status
    settled_status: Status
    status: Status
    action: Action
    order: Optional[OrderResult] = None

    @property
    def order_failed(self) -> bool:
        return self.order is not None and not self.order.is_ok


class TradeStateMachine:
    """
    FSM for a single trading pair.

    Responsibilities:
    - Transition evaluation (rules in core.fsm.transitions)
    - Handler registration and invocation
    - Order submission with result conversion
    - Statistics
    """

    def __init__(self, exchange, symbol: str, profit_multiplier, fallback_quantity=Decimal("0"),
                 buy_commission_rate=Decimal("0.001"), min_quote=Decimal("1")):
        """
        Args:
            exchange: ExchangeInterface implementation
            symbol: Pair symbol (e.g. "BTC/USDT")
            profit_multiplier: Target ratio for the sell target (e.g. 1.01)
            fallback_quantity: SELL quantity when no base balance is reported
            buy_commission_rate: Haircut on the quote balance before sizing a BUY
            min_quote: Quote balance from which START assumes we hold quote
        """
        self.exchange = exchange
        self.symbol = symbol
        self.calculator = TargetPriceCalculator(profit_multiplier)
        self.fallback_quantity = Decimal(str(fallback_quantity))
        self.buy_commission_rate = Decimal(str(buy_commission_rate))
        self.min_quote = Decimal(str(min_quote))

        # Handlers: status -> handler_func
        self.handlers: Dict[Status, Callable] = dict(DEFAULT_HANDLERS)

        self.stats = {
            "ticks": 0,
            "orders_placed": 0,
            "orders_failed": 0,
            "ticks_by_status": {},
        }

        logger.info(f"TradeStateMachine initialized for {symbol} (profit={self.calculator.profit_multiplier})")

    def register_handler(self, status: Status, handler: Callable):
        """
        Replace the handler for a status.

        Handler signature: handler(session, ctx, machine) -> Optional[OrderResult]
        """
        if status in self.handlers:
            logger.debug(f"Overwriting handler for status: {status.value}")
        self.handlers[status] = handler

    def tick(self, session: Session, ctx: TradingContext) -> TickOutcome:
        """
        Process one tick.

        Status and action come from transitions.decide(). Order failures come
        back as an errored OrderResult inside the outcome; they never raise
        out of this method.
        """
        previous = session.status
        session.tick_count += 1

        decision = decide(previous, session.in_trade, ctx.current_price,
                          session.sell_target, session.buy_target,
                          ctx.quote_balance, self.min_quote)
        # START runs its own handler, which applies decision's posture
        settled = Status.START if previous == Status.START else decision.status
        set_status(session, settled, note="rules")

        handler = self.handlers[settled]
        order = handler(session, ctx, self)

        action = decision.action

        self.stats["ticks"] += 1
        key = settled.value
        self.stats["ticks_by_status"][key] = self.stats["ticks_by_status"].get(key, 0) + 1

        return TickOutcome(
            previous_status=previous,
            settled_status=settled,
            status=session.status,
            action=action,
            order=order,
        )

    def submit_order(self, session: Session, ctx: TradingContext, side: str, quantity: Decimal) -> OrderResult:
        """
        Place a market order and record the outcome on the session.

        min_qty / min_notional are advisory: violations are logged, the order
        is still submitted and the exchange has the final word.
        """
        notional = quantity * ctx.current_price
        attempt = OrderAttempt(
            symbol=self.symbol,
            side=side,
            quantity=quantity,
            price=ctx.current_price,
            notional=notional,
            min_qty=ctx.min_qty,
            min_notional=ctx.min_notional,
            below_min_qty=ctx.min_qty is not None and quantity < ctx.min_qty,
            below_min_notional=ctx.min_notional is not None and notional < ctx.min_notional,
        )
        level = logging.WARNING if (attempt.below_min_qty or attempt.below_min_notional) else logging.INFO
        log_event(logger, "order_attempt", attempt, level=level)

        if quantity <= 0:
            result = OrderResult.err(side, OrderErrorKind.INVALID_ORDER, f"quantity {quantity} <= 0")
        else:
            try:
                result = self.exchange.place_market_order(self.symbol, side, quantity)
            except OrderPlacementError as e:
                result = OrderResult.err(side, OrderErrorKind.EXCHANGE, str(e))
            except Exception as e:
                logger.exception(f"Unexpected error placing {side} order for {self.symbol}: {e}",
                                 extra={'event_type': 'ORDER_UNEXPECTED_ERROR', 'symbol': self.symbol,
                                        'side': side, 'error': str(e)})
                result = OrderResult.err(side, OrderErrorKind.EXCHANGE, str(e))

        self._record_order(session, result)
        return result

    def _record_order(self, session: Session, result: OrderResult):
        log_event(logger, "order_outcome", OrderOutcome(
            symbol=self.symbol,
            side=result.side,
            ok=result.is_ok,
            order_id=result.order_id,
            executed_price=result.price,
            quantity=result.quantity,
            error_kind=result.error_kind.value if result.error_kind else None,
            detail=result.message or None,
        ), level=logging.INFO if result.is_ok else logging.ERROR)

        if result.is_ok:
            self.stats["orders_placed"] += 1
            session.last_order_id = result.order_id
        else:
            self.stats["orders_failed"] += 1
            session.failed_orders += 1
            session.last_error = str(result)

    def get_statistics(self) -> Dict[str, Any]:
        """Tick and order counters."""
        return {
            **self.stats,
            "ticks_by_status": dict(self.stats["ticks_by_status"]),
        }

    def __repr__(self):
        return (f"<TradeStateMachine: {self.symbol}, "
                f"{len(self.handlers)} handlers, "
                f"{self.stats['ticks']} ticks>")
