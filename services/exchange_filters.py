#!/usr/bin/env python3
"""
Börsenfilter - Einheitliche Quelle für step_size, min_qty, min_notional

Cacht Filter pro Symbol.
Unterstützt Binance/MEXC-Filterlisten und CCXT-Fallbacks (limits/precision).
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from services.quantize import to_decimal

logger = logging.getLogger(__name__)

# Cache: symbol -> filter dict
_cache: Dict[str, dict] = {}


def _dec(value) -> Optional[Decimal]:
    if value in (None, "", "N/A"):
        return None
    try:
        d = to_decimal(value)
    except Exception:
        return None
    return d if d > 0 else None


def parse_market_filters(market: Dict[str, Any]) -> dict:
    """
    Extract exchange constraints from a ccxt market structure.

    Args:
        market: ccxt market dict (``exchange.market(symbol)``)

    Returns:
        Dict mit:
            - step_size: Mengen-Granularität (Decimal or None)
            - min_qty: Minimale Menge (Decimal or None)
            - min_notional: Minimaler Gegenwert in Quote (Decimal or None)
    """
    limits = market.get("limits") or {}
    min_qty = _dec((limits.get("amount") or {}).get("min"))
    min_notional = _dec((limits.get("cost") or {}).get("min"))
    step_size = None

    # Raw exchange filters take precedence over ccxt's normalized limits
    info = market.get("info") or {}
    for f in info.get("filters", []) or []:
        f_type = f.get("filterType") or f.get("type")

        if f_type in ("LOT_SIZE", "MARKET_LOT_SIZE", "LOT"):
            step_size = _dec(f.get("stepSize")) or step_size
            min_qty = _dec(f.get("minQty")) or min_qty

        if f_type in ("MIN_NOTIONAL", "NOTIONAL"):
            min_notional = _dec(f.get("minNotional")) or min_notional

    # Fallback: ccxt precision (either digit count or tick size, depending on exchange)
    if step_size is None:
        a = (market.get("precision") or {}).get("amount")
        if a is not None:
            a = to_decimal(a)
            if a >= 1 and a == a.to_integral_value():
                step_size = Decimal(1).scaleb(-int(a))
            elif a > 0:
                step_size = a

    return {
        "step_size": step_size,
        "min_qty": min_qty,
        "min_notional": min_notional,
    }


def get_filters(exchange, symbol: str) -> dict:
    """
    Lade und cache Börsenfilter für Symbol.

    Args:
        exchange: CCXT exchange instance (markets loaded)
        symbol: Trading symbol (e.g., "BTC/USDT")

    Raises:
        Exception from ``exchange.market`` when the symbol is unknown;
        the caller decides how to degrade.
    """
    if symbol in _cache:
        return _cache[symbol]

    filters = parse_market_filters(exchange.market(symbol))
    _cache[symbol] = filters
    logger.debug(f"Loaded filters for {symbol}: {filters}")

    return filters


def clear_cache():
    """Clear filter cache (for testing or market structure changes)."""
    _cache.clear()
    logger.info("Filter cache cleared")
