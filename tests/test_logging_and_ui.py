#!/usr/bin/env python3
"""
Tests for JSONL logging setup, event helpers and the rich console output
"""

import io
import json
import logging
import os
import tempfile
import unittest
from decimal import Decimal
from logging.handlers import RotatingFileHandler
from unittest import mock

from rich.console import Console
from rich.logging import RichHandler

from core.event_schemas import TargetUpdate, log_event
from core.fsm.events import EventType, create_event, create_trade_event
from core.fsm.machine import TickOutcome
from core.fsm.phases import Action, Status
from core.fsm.results import OrderErrorKind, OrderResult
from core.fsm.state import Session
from core.logging.logger_setup import setup_logging, shutdown_logging
from engine import LoopConfig
from ui.console_ui import banner, line, shorten, start_summary, status_line


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.log_file = os.path.join(self.tmp.name, "logs", "bot_log_test.jsonl")
        self.logger = logging.getLogger("test_bot_logging")
        self.logger.propagate = False

    def tearDown(self):
        for handler in self._own_handlers():
            handler.close()
            self.logger.removeHandler(handler)
        self.logger._bot_logging_configured = False
        self.tmp.cleanup()

    def _own_handlers(self):
        return [h for h in self.logger.handlers if isinstance(h, (RotatingFileHandler, RichHandler))]

    def _records(self):
        for handler in self._own_handlers():
            handler.flush()
        with open(self.log_file, encoding="utf-8") as fh:
            return [json.loads(row) for row in fh if row.strip()]

    def test_writes_json_lines(self):
        setup_logging(log_file=self.log_file, level="DEBUG", console=False, root=self.logger)
        log_event(self.logger, "target_update", TargetUpdate(
            symbol="BTC/USDT", reason="bootstrap", reference_price=Decimal("100.00"),
            sell_target=Decimal("101.10"), buy_target=Decimal("99.90"),
        ))

        records = self._records()
        self.assertEqual(records[0]["event_type"], "LOGGING_SETUP")
        last = records[-1]
        self.assertEqual(last["event_type"], "TARGET_UPDATE")
        self.assertEqual(last["sell_target"], "101.10")
        self.assertEqual(last["level"], "INFO")
        self.assertTrue(last["timestamp"].endswith("Z"))
        self.assertIn("run_id", last)

    def test_event_type_defaults_to_general(self):
        setup_logging(log_file=self.log_file, console=False, root=self.logger)
        self.logger.warning("plain message")
        self.assertEqual(self._records()[-1]["event_type"], "GENERAL")

    def test_idempotent(self):
        setup_logging(log_file=self.log_file, console=False, root=self.logger)
        setup_logging(log_file=self.log_file, console=False, root=self.logger)
        self.assertEqual(len(self._own_handlers()), 1)
        self.assertIsInstance(self._own_handlers()[0], RotatingFileHandler)

    def test_console_handler(self):
        setup_logging(log_file=self.log_file, console=True, console_level="WARNING", root=self.logger)
        rich_handlers = [h for h in self.logger.handlers if isinstance(h, RichHandler)]
        self.assertEqual(len(rich_handlers), 1)
        self.assertEqual(rich_handlers[0].level, logging.WARNING)

    def test_shutdown_logging_flushes_handlers(self):
        with mock.patch("core.logging.logger_setup.logging.shutdown") as shutdown:
            shutdown_logging()
        shutdown.assert_called_once_with()


class TestEvents(unittest.TestCase):

    def test_create_event(self):
        evt = create_event(EventType.BOOTSTRAP_COMPLETE, "BTC/USDT", samples=4)
        self.assertEqual(evt["event_type"], "BOOTSTRAP_COMPLETE")
        self.assertEqual(evt["symbol"], "BTC/USDT")
        self.assertEqual(evt["samples"], 4)
        self.assertTrue(evt["ts_iso"].endswith("Z"))

    def test_trade_event_keeps_decimals_exact(self):
        evt = create_trade_event(EventType.TRADE_OPENED, "BTC/USDT", "BUY", Decimal("0.10"), Decimal("99.50"))
        self.assertEqual(evt["qty"], "0.10")
        self.assertEqual(evt["price"], "99.50")


class TestConsoleUI(unittest.TestCase):

    def setUp(self):
        self.buffer = io.StringIO()
        self.out = Console(file=self.buffer, width=140, force_terminal=False, color_system=None)

    def test_shorten(self):
        self.assertEqual(shorten("abc", maxlen=10), "abc")
        self.assertEqual(shorten("x" * 20, maxlen=5), "…xxxxx")

    def test_banner(self):
        banner("Spot Profit Bot", "LIVE", "/tmp/sessions/session_1", "ab12cd34", "2024-01-01T00:00:00", out=self.out)
        text = self.buffer.getvalue()
        self.assertIn("Spot Profit Bot", text)
        self.assertIn("ab12cd34", text)

    def test_start_summary(self):
        start_summary(LoopConfig(), {"BTC": Decimal("0"), "USDT": Decimal("100")}, out=self.out)
        text = self.buffer.getvalue()
        self.assertIn("BTC/USDT", text)
        self.assertIn("+1.00%", text)

    def test_status_line_with_fill(self):
        session = Session(symbol="BTC/USDT", status=Status.HOLD, in_trade=True,
                          sell_target=Decimal("101.10"), buy_target=Decimal("98.41"))
        order = OrderResult.ok("BUY", "1001", price=Decimal("99.50"), quantity=Decimal("1.00402010"))
        outcome = TickOutcome(Status.BUY, Status.BUY, Status.HOLD, Action.BUY, order)

        status_line(session, outcome, out=self.out)

        text = self.buffer.getvalue()
        self.assertIn("hold", text)
        self.assertIn("BUY 1.00402010 @ 99.50", text)

    def test_status_line_with_failure(self):
        session = Session(symbol="BTC/USDT", status=Status.SELL, in_trade=True)
        order = OrderResult.err("SELL", OrderErrorKind.NETWORK, "timeout")
        status_line(session, TickOutcome(Status.HOLD, Status.SELL, Status.SELL, Action.SELL, order), out=self.out)
        self.assertIn("SELL FAILED (network)", self.buffer.getvalue())

    def test_line(self):
        line("ENGINE", "Trade loop startet", out=self.out)
        self.assertIn("Trade loop startet", self.buffer.getvalue())


if __name__ == "__main__":
    unittest.main()
