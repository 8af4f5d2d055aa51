"""
FSM Event Definitions

Event types emitted by the trade cycle. Every event is a flat dict that
goes into a log record's ``extra`` and ends up as one JSONL line.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict


class EventType(str, Enum):
    """FSM Event Types"""

    # Status Events
    STATUS_CHANGE = "STATUS_CHANGE"
    """Status transition occurred"""

    # Trade Events
    TRADE_OPENED = "TRADE_OPENED"
    """BUY filled, base asset held"""

    TRADE_CLOSED = "TRADE_CLOSED"
    """SELL filled, round trip complete"""

    # Loop Events
    BOOTSTRAP_COMPLETE = "BOOTSTRAP_COMPLETE"
    """Smoothed start price found, targets seeded"""

    RULES_UNAVAILABLE = "RULES_UNAVAILABLE"
    """Trading rules could not be fetched this tick"""

    FEES_UNAVAILABLE = "FEES_UNAVAILABLE"
    """Fee rates could not be fetched this tick"""


def create_event(
    event_type: EventType,
    symbol: str,
    **kwargs
) -> Dict[str, Any]:
    """
    Create standardized event dict.

    Args:
        event_type: Type of event
        symbol: Trading symbol
        **kwargs: Additional event-specific fields

    Returns:
        Event dict with standard fields
    """
    now = datetime.now(timezone.utc)
    event = {
        "ts_iso": now.isoformat().replace("+00:00", "Z"),
        "ts_ms": int(now.timestamp() * 1000),
        "event_type": event_type.value,
        "symbol": symbol,
    }

    event.update(kwargs)

    return event


def create_status_change_event(
    symbol: str,
    prev_status: str,
    next_status: str,
    in_trade: bool,
    note: str = "",
) -> Dict[str, Any]:
    """Create STATUS_CHANGE event with standard fields."""
    return create_event(
        EventType.STATUS_CHANGE,
        symbol=symbol,
        prev=prev_status,
        next=next_status,
        in_trade=in_trade,
        note=note,
    )


def create_trade_event(
    event_type: EventType,
    symbol: str,
    side: str,
    quantity,
    price,
    **kwargs
) -> Dict[str, Any]:
    """Create trade event; Decimals are stringified so the JSON stays exact."""
    return create_event(
        event_type,
        symbol=symbol,
        side=side,
        qty=str(quantity) if quantity is not None else None,
        price=str(price) if price is not None else None,
        **kwargs
    )
