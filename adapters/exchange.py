"""
Exchange Adapter - Dünne, mockbare Schicht über CCXT
Vereinheitlicht Exchange-Zugriff und macht Tests ohne echte Exchange möglich.
"""

import itertools
import logging
import socket
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import ccxt
import requests

import config
from adapters.retry import with_backoff
from core.fsm.exceptions import (
    BalanceFetchError,
    OrderPlacementError,
    PriceFetchError,
    RulesFetchError,
)
from core.fsm.results import OrderErrorKind, OrderResult
from services.exchange_filters import get_filters
from services.quantize import to_decimal

logger = logging.getLogger(__name__)

NETWORK_ERRORS = (ccxt.NetworkError, ccxt.DDoSProtection, requests.RequestException, socket.timeout)

SIDES = ("BUY", "SELL")


@dataclass(frozen=True)
class TradingRules:
    """Exchange constraints for one pair (advisory for the decision core)."""
    symbol: str
    base_asset: str
    quote_asset: str
    min_qty: Optional[Decimal] = None
    min_notional: Optional[Decimal] = None
    step_size: Optional[Decimal] = None


@dataclass(frozen=True)
class FeeRates:
    """Maker/taker commission fractions for one pair."""
    maker: Decimal
    taker: Decimal


class ExchangeInterface(ABC):
    """
    Abstract interface für Exchange-Operationen.
    Ermöglicht Mocking und verschiedene Exchange-Implementierungen.
    """

    @abstractmethod
    def get_price(self, symbol: str) -> Decimal:
        """Current market price. Raises PriceFetchError."""
        pass

    @abstractmethod
    def get_balance(self, asset: str) -> Decimal:
        """Free balance of an asset. Raises BalanceFetchError."""
        pass

    @abstractmethod
    def get_trading_rules(self, symbol: str) -> TradingRules:
        """Exchange constraints. Raises RulesFetchError."""
        pass

    @abstractmethod
    def get_fee_rates(self, symbol: str) -> FeeRates:
        """Maker/taker fee rates. Raises RulesFetchError."""
        pass

    @abstractmethod
    def place_market_order(self, symbol: str, side: str, quantity: Decimal) -> OrderResult:
        """Market order. Returns OrderResult; may raise OrderPlacementError."""
        pass


def _check_side(side: str) -> str:
    side = side.upper()
    if side not in SIDES:
        raise ValueError(f"side must be one of {SIDES}, got {side}")
    return side


class CcxtExchangeAdapter(ExchangeInterface):
    """
    Exchange Adapter über einen ccxt-Client.

    Fetches are retried with backoff on network errors; market orders are
    never retried (a lost response must not turn into a duplicate order).
    """

    def __init__(self, api_key: str = None, secret: str = None, exchange_id: str = None,
                 timeout_ms: int = None, sandbox: bool = None, client=None):
        """
        Args:
            api_key: Exchange API Key
            secret: Exchange API Secret
            exchange_id: ccxt exchange id (default: config.EXCHANGE_ID)
            timeout_ms: Request timeout (default: config.EXCHANGE_TIMEOUT_MS)
            sandbox: Use the exchange testnet (default: config.EXCHANGE_SANDBOX)
            client: Pre-built ccxt client (tests)
        """
        if client is None:
            exchange_id = exchange_id or config.EXCHANGE_ID
            exchange_class = getattr(ccxt, exchange_id)
            client = exchange_class({
                "apiKey": api_key,
                "secret": secret,
                "enableRateLimit": True,
                "timeout": timeout_ms or config.EXCHANGE_TIMEOUT_MS,
                "options": {"defaultType": "spot"},
            })
            use_sandbox = config.EXCHANGE_SANDBOX if sandbox is None else sandbox
            if use_sandbox:
                client.set_sandbox_mode(True)
        self.x = client
        self._markets_loaded = False

    @with_backoff(max_attempts=config.RETRY_MAX_ATTEMPTS, base_delay=config.RETRY_BASE_DELAY_S,
                  max_delay=config.RETRY_MAX_DELAY_S, total_time_cap_s=config.RETRY_TOTAL_TIME_CAP_S,
                  retry_on=NETWORK_ERRORS)
    def _safe_ccxt_call(self, fn, *args, **kwargs):
        """Harmloser Wrapper, damit nur Netzwerkfehler wiederholt werden"""
        return fn(*args, **kwargs)

    def _ensure_markets(self):
        if not self._markets_loaded:
            self._safe_ccxt_call(self.x.load_markets)
            self._markets_loaded = True

    def get_price(self, symbol: str) -> Decimal:
        try:
            ticker = self._safe_ccxt_call(self.x.fetch_ticker, symbol)
        except ccxt.BaseError as e:
            raise PriceFetchError(f"fetch_ticker failed for {symbol}: {e}", symbol=symbol, cause=e) from e

        last = ticker.get("last") or ticker.get("close")
        if last is None or last <= 0:
            raise PriceFetchError(f"ticker for {symbol} has no last price", symbol=symbol)
        return to_decimal(last)

    def get_balance(self, asset: str) -> Decimal:
        try:
            balance = self._safe_ccxt_call(self.x.fetch_balance)
        except ccxt.BaseError as e:
            raise BalanceFetchError(f"fetch_balance failed: {e}", symbol=asset, cause=e) from e

        free = (balance.get("free") or {}).get(asset)
        if free is None:
            # Assets never held do not show up in the balance at all
            return Decimal("0")
        return to_decimal(free)

    def get_trading_rules(self, symbol: str) -> TradingRules:
        try:
            self._ensure_markets()
            market = self.x.market(symbol)
        except ccxt.BaseError as e:
            raise RulesFetchError(f"market lookup failed for {symbol}: {e}", symbol=symbol, cause=e) from e

        filters = get_filters(self.x, symbol)
        return TradingRules(
            symbol=symbol,
            base_asset=market.get("base", ""),
            quote_asset=market.get("quote", ""),
            min_qty=filters["min_qty"],
            min_notional=filters["min_notional"],
            step_size=filters["step_size"],
        )

    def get_fee_rates(self, symbol: str) -> FeeRates:
        try:
            if self.x.has.get("fetchTradingFee"):
                fee = self._safe_ccxt_call(self.x.fetch_trading_fee, symbol)
            else:
                self._ensure_markets()
                fee = self.x.market(symbol)
        except ccxt.BaseError as e:
            raise RulesFetchError(f"fee lookup failed for {symbol}: {e}", symbol=symbol, cause=e) from e

        if fee.get("maker") is None or fee.get("taker") is None:
            raise RulesFetchError(f"no fee rates reported for {symbol}", symbol=symbol)
        return FeeRates(maker=to_decimal(fee["maker"]), taker=to_decimal(fee["taker"]))

    def place_market_order(self, symbol: str, side: str, quantity: Decimal) -> OrderResult:
        side = _check_side(side)
        logger.info(f"ORDER_SENT {side} {quantity} {symbol}",
                    extra={'event_type': 'ORDER_SENT', 'symbol': symbol, 'side': side, 'qty': str(quantity)})
        try:
            order = self.x.create_order(symbol, "market", side.lower(), float(quantity))
        except ccxt.InsufficientFunds as e:
            return OrderResult.err(side, OrderErrorKind.INSUFFICIENT_FUNDS, str(e))
        except ccxt.InvalidOrder as e:
            return OrderResult.err(side, OrderErrorKind.INVALID_ORDER, str(e))
        except ccxt.NetworkError as e:
            return OrderResult.err(side, OrderErrorKind.NETWORK, str(e))
        except ccxt.BaseError as e:
            return OrderResult.err(side, OrderErrorKind.EXCHANGE, str(e))

        price = order.get("average") or order.get("price")
        filled = order.get("filled") or order.get("amount")
        return OrderResult.ok(
            side,
            order.get("id"),
            price=to_decimal(price) if price else None,
            quantity=to_decimal(filled) if filled else to_decimal(quantity),
        )


class MockExchange(ExchangeInterface):
    """
    Mock Exchange für Tests und Trockenläufe.
    Simuliert Exchange-Verhalten ohne echte API-Calls.
    """

    def __init__(self, prices: Dict[str, Iterable] = None, balances: Dict[str, Decimal] = None,
                 fee_rates: FeeRates = None, rules: Dict[str, TradingRules] = None):
        """
        Args:
            prices: symbol -> price or iterable of prices (last value repeats)
            balances: asset -> free balance
            fee_rates: fee rates for every symbol
            rules: symbol -> TradingRules
        """
        self._price_iters = {}
        self._last_prices: Dict[str, Decimal] = {}
        for symbol, p in (prices or {"BTC/USDT": [Decimal("50000")]}).items():
            self.set_prices(symbol, p)
        self.balances = {k: to_decimal(v) for k, v in (balances or {"USDT": Decimal("10000")}).items()}
        self.fee_rates = fee_rates or FeeRates(maker=Decimal("0.001"), taker=Decimal("0.001"))
        self.rules = rules or {}
        self.orders: List[Dict] = []
        self.fail_orders: List[OrderErrorKind] = []
        self.raise_on_order: Optional[Exception] = None
        self.rules_error: Optional[Exception] = None
        self._order_counter = itertools.count(1001)

    def set_prices(self, symbol: str, prices):
        """Setzt Preis oder Preisfolge für Symbol (für Tests)"""
        if isinstance(prices, (int, float, str, Decimal)):
            prices = [prices]
        self._price_iters[symbol] = iter([to_decimal(p) for p in prices])
        self._last_prices.pop(symbol, None)

    def get_price(self, symbol: str) -> Decimal:
        it = self._price_iters.get(symbol)
        if it is None:
            raise PriceFetchError(f"unknown symbol {symbol}", symbol=symbol)
        price = next(it, None)
        if price is not None:
            self._last_prices[symbol] = price
        if symbol not in self._last_prices:
            raise PriceFetchError(f"no price for {symbol}", symbol=symbol)
        return self._last_prices[symbol]

    def get_balance(self, asset: str) -> Decimal:
        return self.balances.get(asset, Decimal("0"))

    def get_trading_rules(self, symbol: str) -> TradingRules:
        if self.rules_error is not None:
            raise self.rules_error
        if symbol in self.rules:
            return self.rules[symbol]
        base, _, quote = symbol.partition("/")
        return TradingRules(symbol=symbol, base_asset=base, quote_asset=quote)

    def get_fee_rates(self, symbol: str) -> FeeRates:
        if self.rules_error is not None:
            raise self.rules_error
        return self.fee_rates

    def place_market_order(self, symbol: str, side: str, quantity: Decimal) -> OrderResult:
        side = _check_side(side)
        if self.raise_on_order is not None:
            raise self.raise_on_order
        if self.fail_orders:
            kind = self.fail_orders.pop(0)
            return OrderResult.err(side, kind, "scripted failure")

        quantity = to_decimal(quantity)
        price = self._last_prices.get(symbol)
        if price is None:
            raise OrderPlacementError(f"no price for {symbol}", symbol=symbol, side=side, quantity=quantity)

        base, _, quote = symbol.partition("/")
        cost = quantity * price
        if side == "BUY":
            if cost > self.balances.get(quote, Decimal("0")):
                return OrderResult.err(side, OrderErrorKind.INSUFFICIENT_FUNDS, f"need {cost} {quote}")
            self.balances[quote] = self.balances.get(quote, Decimal("0")) - cost
            self.balances[base] = self.balances.get(base, Decimal("0")) + quantity * (1 - self.fee_rates.taker)
        else:
            if quantity > self.balances.get(base, Decimal("0")):
                return OrderResult.err(side, OrderErrorKind.INSUFFICIENT_FUNDS, f"need {quantity} {base}")
            self.balances[base] = self.balances.get(base, Decimal("0")) - quantity
            self.balances[quote] = self.balances.get(quote, Decimal("0")) + cost * (1 - self.fee_rates.taker)

        order_id = str(next(self._order_counter))
        self.orders.append({
            "id": order_id,
            "symbol": symbol,
            "side": side,
            "quantity": quantity,
            "price": price,
            "timestamp": int(time.time() * 1000),
        })
        return OrderResult.ok(side, order_id, price=price, quantity=quantity)
