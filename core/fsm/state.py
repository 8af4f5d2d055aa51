"""
FSM State Management

Session: Complete mutable state of the trading cycle (owned by the driver)
TradingContext: Read-only market/account snapshot for one tick
set_status: Transition helper with logging and bounded history
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .events import create_status_change_event
from .phases import Status

logger = logging.getLogger(__name__)

STATUS_HISTORY_LIMIT = 100


@dataclass
class Session:
    """
    Complete FSM state for the traded pair.

    Created once at process start and passed explicitly into every tick.
    Never persisted: a restart begins again at START.
    """

    # ========== Identity ==========
    symbol: str
    status: Status = Status.START

    # ========== Position ==========
    in_trade: bool = False
    """True while holding base asset (last executed action was BUY)"""

    sell_target: Decimal = Decimal("0")
    """Price at or above which the held base asset is sold"""

    buy_target: Decimal = Decimal("0")
    """Price at or below which quote is spent on base"""

    successful_trades: int = 0
    """Completed sells"""

    # ========== Smoothing ==========
    price_history: List[Decimal] = field(default_factory=list)
    """Every price fed to the smoother (grows, never trimmed)"""

    smoothed_start_price: Optional[Decimal] = None
    """Mean of price_history once enough samples exist"""

    initialized: bool = False
    """Targets seeded by bootstrap"""

    # ========== Telemetry ==========
    tick_count: int = 0
    failed_orders: int = 0
    last_order_id: Optional[str] = None
    last_error: str = ""
    ts_ms: int = 0
    """Timestamp of last status change (milliseconds since epoch)"""

    note: str = ""
    status_history: List[Dict[str, Any]] = field(default_factory=list)
    """[{"ts": 123, "from": "wait", "to": "buy", "note": "..."}, ...]"""

    def get_status_summary(self) -> str:
        """Returns human-readable summary for the console status line."""
        parts = [
            f"{self.symbol}:{self.status.value}",
            f"in_trade={self.in_trade}",
            f"sell>={self.sell_target}",
            f"buy<={self.buy_target}",
            f"trades={self.successful_trades}",
        ]
        if self.failed_orders:
            parts.append(f"failed={self.failed_orders}")
        if self.note:
            parts.append(f"note={self.note[:30]}")
        return " | ".join(parts)


@dataclass(frozen=True)
class TradingContext:
    """
    Market and account snapshot for one tick.

    min_qty / min_notional / step_size are None when the trading rules were
    unavailable this tick; they are advisory only.
    """

    current_price: Decimal
    sell_fee_rate: Decimal
    buy_fee_rate: Decimal
    base_balance: Decimal = Decimal("0")
    quote_balance: Decimal = Decimal("0")
    min_qty: Optional[Decimal] = None
    min_notional: Optional[Decimal] = None
    step_size: Optional[Decimal] = None


def set_status(
    session: Session,
    to: Status,
    *,
    note: str = "",
    log=None,
) -> Dict[str, Any]:
    """
    Transition to new status with logging.

    This is the ONLY function that should change session.status.

    Args:
        session: Session to update
        to: Target status
        note: Human-readable reason for transition
        log: Optional logger for the structured event (default: module logger)

    Returns:
        Event dict that was logged (for testing/debugging)
    """
    prev = session.status
    session.note = note

    evt = create_status_change_event(
        session.symbol,
        prev.value if prev else None,
        to.value,
        session.in_trade,
        note,
    )

    if prev == to:
        return evt

    session.status = to
    session.ts_ms = evt["ts_ms"]
    session.status_history.append({
        "ts": session.ts_ms,
        "from": prev.value if prev else None,
        "to": to.value,
        "note": note,
    })

    if len(session.status_history) > STATUS_HISTORY_LIMIT:
        session.status_history = session.status_history[-STATUS_HISTORY_LIMIT:]

    (log or logger).debug(f"STATUS_CHANGE {evt['prev']} -> {evt['next']}", extra=evt)

    return evt
