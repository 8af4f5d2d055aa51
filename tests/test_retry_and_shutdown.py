#!/usr/bin/env python3
"""
Tests for with_backoff and ShutdownCoordinator
"""

import unittest

from adapters.retry import with_backoff
from services import shutdown_coordinator as sc
from services.shutdown_coordinator import ShutdownCoordinator, ShutdownReason, ShutdownRequest


def _request(reason=ShutdownReason.MANUAL_REQUEST, initiator="test"):
    return ShutdownRequest(reason=reason, initiator=initiator)


class TestWithBackoff(unittest.TestCase):

    def setUp(self):
        sc._global_coordinator = None
        self.sleeps = []

    def tearDown(self):
        sc._global_coordinator = None

    def _flaky(self, failures, exc=ConnectionError):
        calls = []

        @with_backoff(max_attempts=4, base_delay=0.01, max_delay=0.05, total_time_cap_s=5.0,
                      retry_on=(ConnectionError,), sleep=self.sleeps.append)
        def fetch():
            calls.append(1)
            if len(calls) <= failures:
                raise exc("flaky")
            return "ok"

        return fetch, calls

    def test_retries_until_success(self):
        fetch, calls = self._flaky(failures=2)
        self.assertEqual(fetch(), "ok")
        self.assertEqual(len(calls), 3)
        self.assertEqual(len(self.sleeps), 2)

    def test_gives_up_after_max_attempts(self):
        fetch, calls = self._flaky(failures=10)
        with self.assertRaises(ConnectionError):
            fetch()
        self.assertEqual(len(calls), 4)

    def test_backoff_grows_and_is_capped(self):
        fetch, _ = self._flaky(failures=10)
        with self.assertRaises(ConnectionError):
            fetch()
        self.assertTrue(all(0.01 <= s <= 0.05 * 1.25 for s in self.sleeps))
        self.assertLessEqual(self.sleeps[0], self.sleeps[-1])

    def test_other_errors_are_not_retried(self):
        fetch, calls = self._flaky(failures=1, exc=ValueError)
        with self.assertRaises(ValueError):
            fetch()
        self.assertEqual(len(calls), 1)

    def test_time_cap(self):
        calls = []

        @with_backoff(max_attempts=10, base_delay=1.0, total_time_cap_s=0.5,
                      retry_on=(ConnectionError,), sleep=self.sleeps.append)
        def fetch():
            calls.append(1)
            raise ConnectionError("down")

        with self.assertRaises(ConnectionError):
            fetch()
        self.assertEqual(len(calls), 1)
        self.assertEqual(self.sleeps, [])

    def test_shutdown_stops_retrying(self):
        sc.get_shutdown_coordinator().request_shutdown(_request())
        fetch, calls = self._flaky(failures=10)
        with self.assertRaises(ConnectionError):
            fetch()
        self.assertEqual(len(calls), 1)


class TestShutdownCoordinator(unittest.TestCase):

    def setUp(self):
        self.coordinator = ShutdownCoordinator()

    def test_request_once(self):
        self.assertFalse(self.coordinator.is_shutdown_requested())
        self.assertTrue(self.coordinator.request_shutdown(_request()))
        self.assertFalse(self.coordinator.request_shutdown(_request(initiator="second")))
        self.assertTrue(self.coordinator.is_shutdown_requested())

        status = self.coordinator.get_shutdown_status()
        self.assertEqual(status["reason"], "manual_request")
        self.assertEqual(status["statistics"]["shutdown_requests"], 2)

    def test_wait_times_out(self):
        self.assertFalse(self.coordinator.wait_for_shutdown(timeout=0.01))
        self.coordinator.request_shutdown(_request())
        self.assertTrue(self.coordinator.wait_for_shutdown(timeout=0.01))

    def test_cleanup_callbacks(self):
        ran = []
        self.coordinator.add_cleanup_callback(lambda: ran.append("a"))
        self.assertTrue(self.coordinator.execute_graceful_shutdown())
        self.assertEqual(ran, ["a"])

    def test_failing_callback_reported(self):
        def broken():
            raise RuntimeError("boom")

        ran = []
        self.coordinator.add_cleanup_callback(broken)
        self.coordinator.add_cleanup_callback(lambda: ran.append("after"))

        self.assertFalse(self.coordinator.execute_graceful_shutdown())
        self.assertEqual(ran, ["after"])
        self.assertEqual(self.coordinator.get_shutdown_status()["statistics"]["cleanup_failures"], 1)

    def test_signal_handlers_restored(self):
        import signal
        before = signal.getsignal(signal.SIGINT)
        self.coordinator.setup_signal_handlers()
        self.assertIsNot(signal.getsignal(signal.SIGINT), before)
        self.coordinator.restore_signal_handlers()
        self.assertIs(signal.getsignal(signal.SIGINT), before)

    def test_global_instance(self):
        sc._global_coordinator = None
        try:
            self.assertIs(sc.get_shutdown_coordinator(), sc.get_shutdown_coordinator())
            self.assertFalse(sc.is_shutdown_requested())
        finally:
            sc._global_coordinator = None


if __name__ == "__main__":
    unittest.main()
