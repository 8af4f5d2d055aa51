#!/usr/bin/env python3
"""
Console UI - Rich-based Terminal Output for the Trading Bot

Provides terminal output with:
- Banner with Session-ID and timestamp
- Start summary with config overview
- One status line per tick, trade lines for fills
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

# Global console instance
console = Console()

STATUS_STYLES = {
    "start": "dim white",
    "wait": "yellow",
    "hold": "cyan",
    "sell": "red bold",
    "buy": "green bold",
}


def ts() -> str:
    """
    Generate current timestamp string (HH:MM:SS).

    Returns:
        Timestamp string
    """
    return datetime.now().strftime("%H:%M:%S")


def shorten(path: str, maxlen: int = 72) -> str:
    """
    Shorten path string if too long.

    Args:
        path: Path string to shorten
        maxlen: Maximum length

    Returns:
        Shortened path string
    """
    return ("…" + path[-maxlen:]) if len(path) > maxlen else path


def banner(app_name: str, mode: str, session_dir: str, session_id: str, start_iso: str,
           out: Optional[Console] = None):
    """
    Display startup banner with session information.

    Args:
        app_name: Application name (e.g., "Spot Profit Bot")
        mode: Trading mode (e.g., "LIVE", "SANDBOX")
        session_dir: Session directory path
        session_id: Session ID
        start_iso: Start timestamp in ISO format
    """
    out = out or console
    mode_style = "bold green" if mode == "LIVE" else "bold yellow"

    content = Text()
    content.append(" 🚀 Start • ", style="bold cyan")
    content.append(app_name, style="bold white")
    content.append("  Mode: ", style="white")
    content.append(mode, style=mode_style)
    content.append("\n")
    content.append("Session: ", style="dim white")
    content.append(shorten(session_dir), style="cyan")
    content.append("\n")
    content.append("Session-ID: ", style="dim white")
    content.append(session_id, style="bold cyan")
    content.append("    Start: ", style="dim white")
    content.append(start_iso, style="cyan")

    out.print(Panel(content, border_style="cyan", expand=False, padding=(0, 1)))
    out.print()


def start_summary(loop_config, balances: Dict[str, Decimal], out: Optional[Console] = None):
    """
    Display start summary with configuration overview.

    Args:
        loop_config: engine LoopConfig
        balances: asset -> free balance at start
    """
    out = out or console
    table = Table(
        show_header=True,
        header_style="bold magenta",
        border_style="magenta",
        expand=False,
        padding=(0, 2)
    )

    table.add_column("Metric", style="bold white", justify="left")
    table.add_column("Value", style="cyan", justify="left")

    table.add_row("Pair", loop_config.symbol)
    for asset, amount in balances.items():
        table.add_row(f"Balance {asset}", str(amount))

    profit_pct = (Decimal(str(loop_config.profit_multiplier)) - 1) * 100
    table.add_row("Profit", f"{profit_pct:+.2f}% pro Round-Trip")
    table.add_row("Tick", f"{loop_config.tick_interval_ms} ms")
    if loop_config.fallback_quantity:
        table.add_row("Fallback-Menge", str(loop_config.fallback_quantity))

    out.print(table)
    out.print()


def line(label: str, msg: str, out: Optional[Console] = None):
    """
    Print timestamped log line with label.

    Args:
        label: Log label (e.g., "ENGINE", "TICK")
        msg: Log message
    """
    out = out or console
    out.print(Text(ts(), style="dim"), Text(f"{label:8s}", style="bold"), msg)


def status_line(session, outcome, out: Optional[Console] = None):
    """One line per tick: status, price vs. targets, trades. Used as the loop's on_tick."""
    out = out or console
    status = session.status.value
    parts = [
        Text(ts(), style="dim"),
        Text(f" {session.symbol} ", style="bold"),
        Text(f"{status:5s}", style=STATUS_STYLES.get(status, "white")),
        Text(f"  sell≥{session.sell_target}  buy≤{session.buy_target}", style="white"),
        Text(f"  trades={session.successful_trades}", style="magenta"),
    ]
    order = outcome.order
    if order is not None:
        if order.is_ok:
            parts.append(Text(f"  {order.side} {order.quantity} @ {order.price}", style="green bold"))
        else:
            parts.append(Text(f"  {order.side} FAILED ({order.error_kind.value})", style="red bold"))
    out.print(Text.assemble(*parts))

