"""Logging Infrastructure"""

from .logger_setup import UTCJsonFormatter, setup_logging, shutdown_logging

__all__ = [
    'UTCJsonFormatter',
    'setup_logging',
    'shutdown_logging',
]
