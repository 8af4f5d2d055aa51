"""
Shutdown Coordinator
Stops the trade loop cleanly between ticks on SIGINT/SIGTERM
"""

import logging
import platform
import signal as _signal
import sys
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class ShutdownReason(Enum):
    """Possible shutdown reasons"""
    USER_INTERRUPT = "user_interrupt"  # Ctrl+C
    SYSTEM_SIGNAL = "system_signal"    # SIGTERM
    ENGINE_ERROR = "engine_error"      # Fatal fetch error in the loop
    MANUAL_REQUEST = "manual_request"  # Programmatic shutdown


@dataclass
class ShutdownRequest:
    """Represents a shutdown request"""
    reason: ShutdownReason
    initiator: str
    message: Optional[str] = None
    timestamp: float = 0.0

    def __post_init__(self):
        if self.timestamp == 0.0:
            self.timestamp = time.time()


class ShutdownCoordinator:
    """
    Owns the shutdown event the trade loop checks between ticks.

    The loop sleeps via ``wait_for_shutdown(timeout)`` so a signal ends the
    inter-tick delay immediately instead of after SPEED_TRADE milliseconds.
    """

    def __init__(self):
        self._shutdown_event = threading.Event()
        self._shutdown_lock = threading.RLock()
        self._shutdown_request: Optional[ShutdownRequest] = None
        self._cleanup_callbacks: List[Callable[[], None]] = []
        self._original_handlers = {}
        self._stats = {
            'shutdown_requests': 0,
            'cleanup_callbacks_executed': 0,
            'cleanup_failures': 0
        }

    def add_cleanup_callback(self, callback: Callable[[], None]) -> None:
        """Add a cleanup callback to execute during shutdown"""
        with self._shutdown_lock:
            self._cleanup_callbacks.append(callback)
            logger.debug(f"Added cleanup callback: {getattr(callback, '__name__', callback)}")

    def setup_signal_handlers(self) -> None:
        """Install SIGINT/SIGTERM handlers that request a shutdown"""
        def signal_handler(signum, frame):
            signal_name = "SIGINT" if signum == _signal.SIGINT else "SIGTERM"
            reason = ShutdownReason.USER_INTERRUPT if signum == _signal.SIGINT else ShutdownReason.SYSTEM_SIGNAL

            self.request_shutdown(ShutdownRequest(
                reason=reason,
                initiator=f"signal_handler_{signal_name}",
                message=f"Received {signal_name} signal"
            ))

        # Nur im Main-Thread möglich
        if threading.current_thread() is not threading.main_thread():
            logger.warning("Signal handlers can only be installed from main thread")
            return

        self._original_handlers[_signal.SIGINT] = _signal.signal(_signal.SIGINT, signal_handler)
        if platform.system() != "Windows":
            self._original_handlers[_signal.SIGTERM] = _signal.signal(_signal.SIGTERM, signal_handler)
        logger.info("Signal handlers installed")

    def restore_signal_handlers(self) -> None:
        """Put back whatever handlers were active before setup_signal_handlers"""
        for signum, handler in self._original_handlers.items():
            _signal.signal(signum, handler)
        self._original_handlers.clear()

    def request_shutdown(self, request: ShutdownRequest) -> bool:
        """
        Request application shutdown

        Returns:
            True if shutdown was initiated, False if already in progress
        """
        with self._shutdown_lock:
            self._stats['shutdown_requests'] += 1

            if self._shutdown_event.is_set():
                logger.warning(f"Shutdown already in progress, ignoring request from {request.initiator}")
                return False

            self._shutdown_request = request
            logger.info(f"Shutdown requested: {request.reason.value} by {request.initiator}",
                        extra={'event_type': 'SHUTDOWN_REQUESTED', 'reason': request.reason.value})
            if request.message:
                logger.info(f"Shutdown message: {request.message}")

            self._shutdown_event.set()
            return True

    def is_shutdown_requested(self) -> bool:
        """Check if shutdown has been requested"""
        return self._shutdown_event.is_set()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until shutdown is requested or ``timeout`` seconds pass.

        Returns:
            True if shutdown was signaled, False on timeout
        """
        return self._shutdown_event.wait(timeout=timeout)

    def execute_graceful_shutdown(self) -> bool:
        """
        Run cleanup callbacks and flush log handlers.

        Returns:
            True if every callback succeeded
        """
        ok = True
        logger.info(f"Executing {len(self._cleanup_callbacks)} cleanup callbacks")

        for i, callback in enumerate(self._cleanup_callbacks):
            try:
                callback()
                self._stats['cleanup_callbacks_executed'] += 1
            except Exception as e:
                ok = False
                self._stats['cleanup_failures'] += 1
                logger.error(f"Cleanup callback {i} failed: {e}")

        for handler in logging.getLogger().handlers:
            handler.flush()
        sys.stdout.flush()

        logger.info("SHUTDOWN_COMPLETE", extra={'event_type': 'SHUTDOWN_COMPLETE'})
        return ok

    def get_shutdown_status(self) -> Dict[str, Any]:
        """Get current shutdown status"""
        with self._shutdown_lock:
            return {
                'shutdown_requested': self._shutdown_event.is_set(),
                'reason': self._shutdown_request.reason.value if self._shutdown_request else None,
                'cleanup_callbacks_registered': len(self._cleanup_callbacks),
                'statistics': self._stats.copy()
            }


# Global instance for easy access
_global_coordinator: Optional[ShutdownCoordinator] = None


def get_shutdown_coordinator() -> ShutdownCoordinator:
    """Get or create global shutdown coordinator"""
    global _global_coordinator
    if _global_coordinator is None:
        _global_coordinator = ShutdownCoordinator()
    return _global_coordinator
