# ui/__init__.py
"""
UI Module - Rich-based Terminal Output
"""

from .console_ui import banner, line, shorten, start_summary, status_line, ts

__all__ = [
    'banner',
    'start_summary',
    'status_line',
    'line',
    'ts',
    'shorten',
]
