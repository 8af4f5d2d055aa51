#!/usr/bin/env python3
"""
Retry Module with Exponential Backoff

Provides a decorator for retry logic with:
- Exponential backoff with jitter
- Hard total time budget
- Shutdown awareness
- Structured retry event logging

Usage:
    @with_backoff(max_attempts=3, base_delay=0.5, retry_on=NETWORK_ERRORS)
    def fetch_something():
        ...
"""

import functools
import logging
import random
import time

log = logging.getLogger(__name__)


def with_backoff(max_attempts=5, base_delay=0.2, max_delay=2.0, total_time_cap_s=6.0,
                 retry_on=(Exception,), sleep=None):
    """
    Exponentieller Backoff mit Jitter + hartem Gesamtzeitbudget.

    Bricht deterministisch ab: once attempts or the time budget run out the
    last exception is re-raised unchanged.

    Args:
        max_attempts: Maximum number of attempts (including the first call)
        base_delay: Initial delay in seconds (doubles each retry)
        max_delay: Maximum delay cap in seconds
        total_time_cap_s: Total time budget across all retries
        retry_on: Tuple of exception types to retry on
        sleep: Sleep function override (tests); default is shutdown-aware

    Returns:
        Decorated function with retry logic
    """
    def deco(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            from services.shutdown_coordinator import get_shutdown_coordinator
            shutdown_coordinator = get_shutdown_coordinator()

            operation = fn.__name__
            start = time.monotonic()
            delay = base_delay
            attempt = 0

            while True:
                attempt += 1
                try:
                    return fn(*args, **kwargs)

                except retry_on as e:
                    elapsed = time.monotonic() - start
                    error_message = str(e)[:300]

                    will_retry = (attempt < max_attempts) and (elapsed + delay <= total_time_cap_s)
                    backoff_ms = int(min(max_delay, delay) * (1.0 + 0.25 * random.random()) * 1000)

                    log.log(
                        logging.INFO if will_retry else logging.WARNING,
                        f"retry_attempt {operation}: attempt {attempt}/{max_attempts}, error: {error_message}",
                        extra={
                            'event_type': 'RETRY_ATTEMPT',
                            'operation': operation,
                            'attempt': attempt,
                            'max_retries': max_attempts,
                            'error_class': e.__class__.__name__,
                            'backoff_ms': backoff_ms,
                            'will_retry': will_retry,
                        }
                    )

                    if not will_retry:
                        raise

                    if shutdown_coordinator.is_shutdown_requested():
                        log.info(f"Retry aborted due to shutdown: {operation} (attempt {attempt})")
                        raise

                    sleep_for = backoff_ms / 1000.0
                    if sleep is not None:
                        sleep(sleep_for)
                    elif shutdown_coordinator.wait_for_shutdown(timeout=sleep_for):
                        log.info(f"Retry interrupted by shutdown: {operation}")
                        raise

                    delay *= 2.0

        return wrapper
    return deco
