#!/usr/bin/env python3
"""
Tests for TradeStateMachine + action handlers against MockExchange

Covers:
- start → buy posture → BUY filled → hold
- SELL failure keeps the session untouched, no exception escapes
- Quantity sizing (step size, commission haircut, fallback)
- Advisory exchange minimums
"""

import unittest
from decimal import Decimal

from adapters.exchange import MockExchange
from core.fsm.actions import buy_quantity, sell_quantity
from core.fsm.exceptions import OrderPlacementError
from core.fsm.machine import TradeStateMachine
from core.fsm.phases import Action, Status
from core.fsm.results import OrderErrorKind, OrderResult
from core.fsm.state import Session, TradingContext
from core.fsm.transitions import decide

SYMBOL = "BTC/USDT"
FEE = Decimal("0.001")


def make_ctx(exchange, **overrides):
    """Snapshot the way the trade loop builds it (price first, then balances)."""
    price = exchange.get_price(SYMBOL)
    values = dict(
        current_price=price,
        sell_fee_rate=FEE,
        buy_fee_rate=FEE,
        base_balance=exchange.get_balance("BTC"),
        quote_balance=exchange.get_balance("USDT"),
    )
    values.update(overrides)
    return TradingContext(**values)


def make_machine(exchange, **kwargs):
    return TradeStateMachine(exchange, SYMBOL, Decimal("1.01"), **kwargs)


class TestQuantities(unittest.TestCase):

    def test_sell_quantity_floors_balance(self):
        self.assertEqual(sell_quantity(Decimal("1.23456"), Decimal("0.001"), Decimal("0")), Decimal("1.234"))

    def test_sell_quantity_default_step(self):
        self.assertEqual(sell_quantity(Decimal("0.123456789"), None, Decimal("0")), Decimal("0.12345678"))

    def test_sell_quantity_fallback(self):
        self.assertEqual(sell_quantity(Decimal("0"), None, Decimal("5")), Decimal("5"))

    def test_buy_quantity_applies_commission(self):
        # 100 * 0.999 / 3 = 33.3
        self.assertEqual(buy_quantity(Decimal("100"), Decimal("3"), Decimal("0.001"), Decimal("0.01")),
                         Decimal("33.3"))

    def test_buy_quantity_zero_without_quote(self):
        self.assertEqual(buy_quantity(Decimal("0"), Decimal("3"), Decimal("0.001"), None), Decimal("0"))


class TestStartToHold(unittest.TestCase):

    def setUp(self):
        self.exchange = MockExchange(prices={SYMBOL: ["100", "98"]}, balances={"USDT": Decimal("1000")})
        self.machine = make_machine(self.exchange)
        self.session = Session(symbol=SYMBOL, sell_target=Decimal("101"), buy_target=Decimal("99"))

    def test_start_picks_buy_posture_without_order(self):
        outcome = self.machine.tick(self.session, make_ctx(self.exchange))

        self.assertEqual(outcome.previous_status, Status.START)
        self.assertEqual(outcome.status, Status.BUY)
        self.assertEqual(outcome.action, Action.NONE)
        self.assertIsNone(outcome.order)
        self.assertFalse(self.session.in_trade)
        self.assertEqual(self.exchange.orders, [])

    def test_buy_fill_moves_to_hold(self):
        self.machine.tick(self.session, make_ctx(self.exchange))
        outcome = self.machine.tick(self.session, make_ctx(self.exchange))

        self.assertEqual(outcome.settled_status, Status.BUY)
        self.assertEqual(outcome.action, Action.BUY)
        self.assertTrue(outcome.order.is_ok)

        self.assertEqual(self.session.status, Status.HOLD)
        self.assertTrue(self.session.in_trade)
        # 98 * 0.99 = 97.02, minus fee = 96.92298, integer precision
        self.assertEqual(self.session.buy_target, Decimal("97"))
        self.assertEqual(self.session.sell_target, Decimal("101"))

        self.assertEqual(len(self.exchange.orders), 1)
        order = self.exchange.orders[0]
        self.assertEqual(order["side"], "BUY")
        # 1000 * 0.999 / 98 floored to 1e-8
        self.assertEqual(order["quantity"], Decimal("10.19387755"))
        self.assertEqual(self.session.last_order_id, order["id"])

    def test_statistics(self):
        self.machine.tick(self.session, make_ctx(self.exchange))
        self.machine.tick(self.session, make_ctx(self.exchange))

        stats = self.machine.get_statistics()
        self.assertEqual(stats["ticks"], 2)
        self.assertEqual(stats["orders_placed"], 1)
        self.assertEqual(stats["orders_failed"], 0)
        self.assertEqual(stats["ticks_by_status"], {"start": 1, "buy": 1})


class TestSell(unittest.TestCase):

    def setUp(self):
        self.exchange = MockExchange(prices={SYMBOL: ["102"]}, balances={"BTC": Decimal("1")})
        self.machine = make_machine(self.exchange)
        self.session = Session(symbol=SYMBOL, status=Status.HOLD, in_trade=True,
                               sell_target=Decimal("101"), buy_target=Decimal("99"))

    def test_sell_failure_leaves_session_untouched(self):
        self.exchange.fail_orders = [OrderErrorKind.INSUFFICIENT_FUNDS]

        outcome = self.machine.tick(self.session, make_ctx(self.exchange))

        self.assertTrue(outcome.order_failed)
        self.assertEqual(outcome.order.error_kind, OrderErrorKind.INSUFFICIENT_FUNDS)
        self.assertEqual(self.session.status, Status.SELL)
        self.assertTrue(self.session.in_trade)
        self.assertEqual(self.session.successful_trades, 0)
        self.assertEqual(self.session.sell_target, Decimal("101"))
        self.assertEqual(self.session.failed_orders, 1)
        self.assertIn("insufficient_funds", self.session.last_error)

    def test_raised_placement_error_becomes_result(self):
        self.exchange.raise_on_order = OrderPlacementError("rejected", symbol=SYMBOL, side="SELL")

        outcome = self.machine.tick(self.session, make_ctx(self.exchange))

        self.assertEqual(outcome.order.error_kind, OrderErrorKind.EXCHANGE)
        self.assertEqual(self.session.status, Status.SELL)
        self.assertTrue(self.session.in_trade)

    def test_unexpected_order_error_stays_inside_tick(self):
        self.exchange.raise_on_order = ConnectionError("connection reset by peer")

        with self.assertLogs("core.fsm.machine", level="ERROR"):
            outcome = self.machine.tick(self.session, make_ctx(self.exchange))

        self.assertTrue(outcome.order_failed)
        self.assertEqual(outcome.order.error_kind, OrderErrorKind.EXCHANGE)
        self.assertIn("connection reset by peer", outcome.order.message)
        self.assertEqual(self.session.status, Status.SELL)
        self.assertTrue(self.session.in_trade)
        self.assertEqual(self.session.sell_target, Decimal("101"))
        self.assertEqual(self.session.successful_trades, 0)
        self.assertEqual(self.session.failed_orders, 1)
        self.assertEqual(self.machine.get_statistics()["orders_failed"], 1)

    def test_retry_after_failure_sells(self):
        self.exchange.fail_orders = [OrderErrorKind.NETWORK]
        self.machine.tick(self.session, make_ctx(self.exchange))

        outcome = self.machine.tick(self.session, make_ctx(self.exchange))

        self.assertTrue(outcome.order.is_ok)
        self.assertEqual(self.session.successful_trades, 1)
        self.assertFalse(self.session.in_trade)
        # 102 * 1.01 = 103.02, plus fee = 103.12302, integer precision
        self.assertEqual(self.session.sell_target, Decimal("103"))
        self.assertEqual(self.exchange.balances["BTC"], Decimal("0"))

    def test_sell_respects_step_size(self):
        self.exchange.balances["BTC"] = Decimal("1.23456")
        self.machine.tick(self.session, make_ctx(self.exchange, step_size=Decimal("0.001")))
        self.assertEqual(self.exchange.orders[0]["quantity"], Decimal("1.234"))

    def test_min_notional_is_advisory(self):
        ctx = make_ctx(self.exchange, min_notional=Decimal("1000000"))

        with self.assertLogs("core.fsm.machine", level="WARNING") as logs:
            outcome = self.machine.tick(self.session, ctx)

        self.assertTrue(outcome.order.is_ok)
        self.assertEqual(len(self.exchange.orders), 1)
        self.assertTrue(any(r.event_type == "ORDER_ATTEMPT" and r.below_min_notional for r in logs.records))


class TestBuyWithoutQuote(unittest.TestCase):

    def test_zero_quantity_is_invalid_order(self):
        exchange = MockExchange(prices={SYMBOL: ["90"]}, balances={"USDT": Decimal("0")})
        machine = make_machine(exchange)
        session = Session(symbol=SYMBOL, status=Status.WAIT, sell_target=Decimal("101"), buy_target=Decimal("99"))

        outcome = machine.tick(session, make_ctx(exchange))

        self.assertEqual(outcome.order.error_kind, OrderErrorKind.INVALID_ORDER)
        self.assertEqual(exchange.orders, [])
        self.assertEqual(session.status, Status.BUY)
        self.assertFalse(session.in_trade)


class TestTickFollowsDecide(unittest.TestCase):

    CASES = [
        (Status.START, False, "100"),
        (Status.WAIT, False, "100"),
        (Status.WAIT, False, "98"),
        (Status.BUY, False, "99"),
        (Status.HOLD, True, "100"),
        (Status.HOLD, True, "102"),
        (Status.SELL, True, "101"),
    ]

    def test_status_and_action_match_decide(self):
        for status, in_trade, price in self.CASES:
            with self.subTest(status=status, in_trade=in_trade, price=price):
                exchange = MockExchange(prices={SYMBOL: [price]},
                                        balances={"USDT": Decimal("100"), "BTC": Decimal("1")})
                machine = make_machine(exchange)
                session = Session(symbol=SYMBOL, status=status, in_trade=in_trade,
                                  sell_target=Decimal("101"), buy_target=Decimal("99"))
                ctx = make_ctx(exchange)
                expected = decide(status, in_trade, ctx.current_price, session.sell_target,
                                  session.buy_target, ctx.quote_balance, machine.min_quote)

                outcome = machine.tick(session, ctx)

                self.assertEqual(outcome.action, expected.action)
                if status == Status.START:
                    self.assertEqual(session.status, expected.status)
                    self.assertEqual(session.in_trade, expected.in_trade)
                else:
                    self.assertEqual(outcome.settled_status, expected.status)


class TestHandlers(unittest.TestCase):

    def test_register_handler(self):
        exchange = MockExchange(prices={SYMBOL: ["100"]})
        machine = make_machine(exchange)
        calls = []

        def custom_wait(session, ctx, m):
            calls.append(ctx.current_price)

        machine.register_handler(Status.WAIT, custom_wait)
        session = Session(symbol=SYMBOL, status=Status.WAIT, sell_target=Decimal("101"), buy_target=Decimal("99"))
        machine.tick(session, make_ctx(exchange))

        self.assertEqual(calls, [Decimal("100")])


class TestOrderResult(unittest.TestCase):

    def test_executed_price_fallback(self):
        self.assertEqual(OrderResult.ok("BUY", "1").executed_price(Decimal("5")), Decimal("5"))
        self.assertEqual(OrderResult.ok("BUY", "1", price=Decimal("4")).executed_price(Decimal("5")), Decimal("4"))

    def test_str(self):
        self.assertTrue(str(OrderResult.err("SELL", OrderErrorKind.NETWORK, "timeout")).startswith("ERR[SELL"))


if __name__ == "__main__":
    unittest.main()
