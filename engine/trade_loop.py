#!/usr/bin/env python3
"""
Trade Loop Driver - Orchestration Layer

One iteration: fetch price → (bootstrap once) → fetch rules, fees and
balances → TradeStateMachine.tick → pause → repeat.

The Session is owned by the driver and passed explicitly into every tick.
The loop runs until shutdown is requested or a fatal fetch error escapes.
"""

import logging
import time
from decimal import Decimal
from typing import Callable, Optional

from adapters.exchange import ExchangeInterface, FeeRates, TradingRules
from core.event_schemas import TargetUpdate, TickSummary, log_event
from core.fsm.events import EventType, create_event
from core.fsm.exceptions import RulesFetchError
from core.fsm.machine import TickOutcome, TradeStateMachine
from core.fsm.state import Session, TradingContext
from services.targets import decimals_of
from signals.price_smoother import PriceSmoother

from .engine_config import LoopConfig

logger = logging.getLogger(__name__)


class TradeLoopDriver:
    """
    Drives the single-pair trade cycle.

    Responsibilities:
    - Bootstrap: smooth the first prices and seed sell/buy targets
    - Build the TradingContext for each tick
    - Tolerate missing rules/fees, let price/balance errors propagate
    - Pause between ticks, stop between ticks on shutdown
    """

    def __init__(self, exchange: ExchangeInterface, machine: TradeStateMachine, session: Session,
                 loop_config: LoopConfig, shutdown=None,
                 sleep: Optional[Callable[[float], None]] = None,
                 on_tick: Optional[Callable[[Session, TickOutcome], None]] = None):
        """
        Args:
            exchange: ExchangeInterface implementation
            machine: TradeStateMachine for loop_config.symbol
            session: Fresh Session (status START)
            loop_config: Loop settings
            shutdown: ShutdownCoordinator checked between ticks (optional)
            sleep: Pause function override; default waits on the shutdown event
            on_tick: Callback after every steady-state tick (console UI)
        """
        self.exchange = exchange
        self.machine = machine
        self.session = session
        self.cfg = loop_config
        self.shutdown = shutdown
        self._sleep = sleep
        self.on_tick = on_tick

        self.smoother = PriceSmoother(session.price_history, min_samples=loop_config.min_samples)
        self._fees: Optional[FeeRates] = None
        self._rules: Optional[TradingRules] = None

    # ------------------------------------------------------------------
    # Collaborator lookups
    # ------------------------------------------------------------------

    def fetch_fee_rates(self) -> FeeRates:
        """Current fee rates; last known (or configured fallback) when unavailable."""
        try:
            self._fees = self.exchange.get_fee_rates(self.cfg.symbol)
        except RulesFetchError as e:
            logger.warning(f"Fee rates unavailable this tick: {e}",
                           extra=create_event(EventType.FEES_UNAVAILABLE, self.cfg.symbol, error=str(e)))
        if self._fees is None:
            fallback = self.cfg.fee_rate_fallback
            return FeeRates(maker=fallback, taker=fallback)
        return self._fees

    def fetch_rules(self) -> Optional[TradingRules]:
        """Trading rules, or None when unavailable this tick (advisory data)."""
        try:
            self._rules = self.exchange.get_trading_rules(self.cfg.symbol)
        except RulesFetchError as e:
            logger.warning(f"Trading rules unavailable this tick: {e}",
                           extra=create_event(EventType.RULES_UNAVAILABLE, self.cfg.symbol, error=str(e)))
            return None
        return self._rules

    def build_context(self, price: Decimal) -> TradingContext:
        """Snapshot for one tick. Balance errors propagate."""
        rules = self.fetch_rules()
        fees = self.fetch_fee_rates()
        base_balance = self.exchange.get_balance(self.cfg.base_asset)
        quote_balance = self.exchange.get_balance(self.cfg.quote_asset)

        return TradingContext(
            current_price=price,
            sell_fee_rate=fees.taker,
            buy_fee_rate=fees.maker,
            base_balance=base_balance,
            quote_balance=quote_balance,
            min_qty=rules.min_qty if rules else None,
            min_notional=rules.min_notional if rules else None,
            step_size=rules.step_size if rules else None,
        )

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def bootstrap(self) -> bool:
        """
        Feed prices to the smoother until it yields, then seed the targets.

        The initial buy target uses a neutral multiplier of 1 (fee only).

        Returns:
            True once the session is initialized, False if shutdown interrupted it
        """
        smoothed = None
        price = None
        while smoothed is None:
            if self._shutdown_requested():
                return False
            price = self.exchange.get_price(self.cfg.symbol)
            smoothed = self.smoother.observe(price)
            self.session.smoothed_start_price = smoothed
            logger.debug(f"Bootstrap sample {self.smoother.size}/{self.cfg.min_samples}: {price}")
            if smoothed is None and self.cfg.bootstrap_delay_ms:
                self._pause(self.cfg.bootstrap_delay_ms / 1000.0)

        fees = self.fetch_fee_rates()
        precision = decimals_of(price)
        calc = self.machine.calculator
        self.session.sell_target = calc.sell_for(smoothed, fees.taker, precision=precision)
        self.session.buy_target = calc.buy_for(smoothed, fees.maker, precision=precision, multiplier=1)
        self.session.initialized = True

        log_event(logger, "target_update", TargetUpdate(
            symbol=self.session.symbol,
            reason="bootstrap",
            reference_price=smoothed,
            sell_target=self.session.sell_target,
            buy_target=self.session.buy_target,
            profit_multiplier=calc.profit_multiplier,
        ))
        logger.info(f"Smoothed start price {smoothed} after {self.smoother.size} samples",
                    extra=create_event(EventType.BOOTSTRAP_COMPLETE, self.cfg.symbol,
                                       smoothed_start_price=str(smoothed),
                                       samples=self.smoother.size))
        return True

    def run_once(self) -> Optional[TickOutcome]:
        """
        One iteration. Returns None for the bootstrap iteration.

        Raises:
            PriceFetchError / BalanceFetchError: fatal, the loop cannot decide without them
        """
        if not self.session.initialized:
            self.bootstrap()
            return None

        price = self.exchange.get_price(self.cfg.symbol)
        ctx = self.build_context(price)
        outcome = self.machine.tick(self.session, ctx)

        log_event(logger, "tick", TickSummary(
            symbol=self.session.symbol,
            tick=self.session.tick_count,
            price=price,
            prev_status=outcome.previous_status.value,
            status=self.session.status.value,
            action=outcome.action.value,
            in_trade=self.session.in_trade,
            sell_target=self.session.sell_target,
            buy_target=self.session.buy_target,
            successful_trades=self.session.successful_trades,
        ), level=logging.DEBUG)

        if self.on_tick:
            self.on_tick(self.session, outcome)
        return outcome

    def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Loop until shutdown (or ``max_ticks`` steady-state ticks, for tooling).

        The bootstrap iteration is followed immediately by the first tick.

        Returns:
            Number of steady-state ticks executed
        """
        ticks = 0
        logger.info(f"Trade loop started for {self.cfg.symbol} (interval={self.cfg.tick_interval_ms}ms)",
                    extra={'event_type': 'LOOP_START', 'symbol': self.cfg.symbol})

        while not self._shutdown_requested():
            outcome = self.run_once()
            if outcome is None:
                continue

            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            if self._pause(self.cfg.tick_interval_ms / 1000.0):
                break

        logger.info(f"Trade loop stopped after {ticks} ticks",
                    extra={'event_type': 'LOOP_STOP', 'ticks': ticks,
                           'successful_trades': self.session.successful_trades})
        return ticks

    def _shutdown_requested(self) -> bool:
        return self.shutdown is not None and self.shutdown.is_shutdown_requested()

    def _pause(self, seconds: float) -> bool:
        """Sleep between ticks. Returns True if shutdown was requested meanwhile."""
        if self._sleep is not None:
            self._sleep(seconds)
            return self._shutdown_requested()
        if self.shutdown is not None:
            return self.shutdown.wait_for_shutdown(timeout=seconds)
        time.sleep(seconds)
        return False
