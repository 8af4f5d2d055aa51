#!/usr/bin/env python3
"""
Event Schemas - Pydantic Models for Structured Logging

Provides type-safe schemas for the trade loop's log events:
- Target Events (bootstrap seeding, recompute after a fill)
- Order Events (attempt, outcome)
- Tick Events (one summary per tick)

Usage:
    from core.event_schemas import TargetUpdate, log_event

    ev = TargetUpdate(
        symbol="BTC/USDT",
        reason="sell_filled",
        reference_price=Decimal("50000"),
        sell_target=Decimal("50550"),
        buy_target=Decimal("49450"),
    )
    log_event(logger, "target_update", ev)
"""

import logging
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


# =============================================================================
# TARGET EVENTS
# =============================================================================

class TargetUpdate(BaseModel):
    """
    Sell/buy targets after bootstrap or a filled order.

    Fields:
        reason: "bootstrap" | "sell_filled" | "buy_filled"
        reference_price: Price the targets were computed from
    """
    symbol: str
    reason: str
    reference_price: Decimal
    sell_target: Decimal
    buy_target: Decimal
    fee_rate: Optional[Decimal] = None
    profit_multiplier: Optional[Decimal] = None


# =============================================================================
# ORDER EVENTS
# =============================================================================

class OrderAttempt(BaseModel):
    """Market order about to be submitted."""
    symbol: str
    side: str
    quantity: Decimal
    price: Decimal
    notional: Decimal
    min_qty: Optional[Decimal] = None
    min_notional: Optional[Decimal] = None
    below_min_qty: bool = False
    below_min_notional: bool = False


class OrderOutcome(BaseModel):
    """Result of a market order."""
    symbol: str
    side: str
    ok: bool
    order_id: Optional[str] = None
    executed_price: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    error_kind: Optional[str] = None
    detail: Optional[str] = None


# =============================================================================
# TICK EVENTS
# =============================================================================

class TickSummary(BaseModel):
    """One line per tick for telemetry."""
    symbol: str
    tick: int
    price: Decimal
    prev_status: str
    status: str
    action: str
    in_trade: bool
    sell_target: Decimal
    buy_target: Decimal
    successful_trades: int


def log_event(log: logging.Logger, event_name: str, event: BaseModel, level: int = logging.INFO) -> None:
    """Emit a schema event as a structured log record (event_type = upper-case name)."""
    payload = event.model_dump(mode="json")
    log.log(level, event_name, extra={'event_type': event_name.upper(), **payload})
