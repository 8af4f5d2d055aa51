#!/usr/bin/env python3
"""
Order Results

Explicit outcome of a market order placement. Handlers branch on
``result.is_ok`` instead of relying on exception suppression.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class OrderErrorKind(str, Enum):
    """Why an order did not go through."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_ORDER = "invalid_order"
    NETWORK = "network"
    EXCHANGE = "exchange"


@dataclass(frozen=True)
class OrderResult:
    """
    Result of ``place_market_order``.

    Ok:  order_id is set, price/quantity carry the executed values when the
         exchange reports them (None otherwise).
    Err: error_kind and message are set.
    """

    side: str
    order_id: Optional[str] = None
    price: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    error_kind: Optional[OrderErrorKind] = None
    message: str = ""

    @classmethod
    def ok(cls, side: str, order_id: str, price: Optional[Decimal] = None,
           quantity: Optional[Decimal] = None) -> "OrderResult":
        return cls(side=side, order_id=str(order_id), price=price, quantity=quantity)

    @classmethod
    def err(cls, side: str, kind: OrderErrorKind, message: str = "") -> "OrderResult":
        return cls(side=side, error_kind=kind, message=message)

    @property
    def is_ok(self) -> bool:
        return self.error_kind is None

    def executed_price(self, fallback: Decimal) -> Decimal:
        """Executed price, or ``fallback`` when the exchange did not report one."""
        if self.price is not None and self.price > 0:
            return self.price
        return fallback

    def __str__(self):
        if self.is_ok:
            return f"OK[{self.side} id={self.order_id} qty={self.quantity} px={self.price}]"
        return f"ERR[{self.side} {self.error_kind.value}: {self.message}]"
