#!/usr/bin/env python3
"""
Mock Market Maker - Exchange Wire Protocol
Order intents, symbol formats, endpoints and error types shared by the
exchange client, the price oracle and the cycle engine.
"""

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Union

OrderSide = Literal["BUY", "SELL"]
OrderType = Literal["LIMIT", "MARKET"]
TimeInForce = Literal[
    "GTC",  # good-till-cancelled
    "ALO",  # post-only
    "IOC"   # immediate-or-cancel
]

ParamValue = Union[str, int, float, bool, None]

PERP_SUFFIX = "PERP"
QUOTE_ALIASES = {"USDC": "USDT"}


class APIEndpoints:
    """Exchange REST paths"""

    ORDER = "/fapi/v1/order"
    OPEN_ORDERS = "/fapi/v1/openOrders"
    PREMIUM_INDEX = "/fapi/v1/premiumIndex"


class ResponseCodes:
    """HTTP status codes the client distinguishes"""
    SUCCESS = 200
    UNAUTHORIZED = 401  # API key expired


class MarketMakerError(Exception):
    """Base class for all market maker errors."""


class ConfigError(MarketMakerError):
    """Settings are missing or invalid."""


class SignerError(MarketMakerError):
    """Signing seed is malformed or the signing self-test failed."""


class CycleError(MarketMakerError):
    """A pair's cycle failed; counted against its consecutive-error budget."""


class PriceUnavailableError(CycleError):
    pass


class InvalidPriceError(CycleError):
    pass


class OrderRejectedError(CycleError):
    def __init__(self, side: str, order_type: str, status: int, body: str):
        super().__init__(f"{side} {order_type} failed [{status}]: {body}")
        self.side = side
        self.order_type = order_type
        self.status = status
        self.body = body


class CredentialExpiredError(MarketMakerError):
    """The exchange rejected the API key (401). Affects every pair."""

    def __init__(self, status: int = ResponseCodes.UNAUTHORIZED):
        super().__init__(f"API key expired ({status})")
        self.status = status


class FatalStop(MarketMakerError):
    """Ends the whole process with ``exit_code``.

    0 means do not restart (operator must fix credentials), 1 means a
    supervisor may restart the process.
    """

    def __init__(self, message: str, exit_code: int):
        super().__init__(message)
        self.exit_code = exit_code


def to_backend_symbol(symbol: str) -> str:
    """BTC-USDC -> BTCUSDCPERP (perpetual), BTC/USDC -> BTCUSDC (spot)."""
    if "-" in symbol:
        return symbol.replace("-", "") + PERP_SUFFIX
    return symbol.replace("/", "")


def to_reference_symbol(symbol: str) -> str:
    """Symbol of the same instrument on the external reference venue."""
    base = to_backend_symbol(symbol)
    if base.endswith(PERP_SUFFIX):
        base = base[:-len(PERP_SUFFIX)]
    for quote, alias in QUOTE_ALIASES.items():
        if base.endswith(quote):
            return base[:-len(quote)] + alias
    return base


@dataclass(frozen=True)
class OrderIntent:
    """One order as submitted to ``POST /fapi/v1/order``"""
    product_id: int
    symbol: str  # backend format
    side: OrderSide
    type: OrderType
    quantity: str
    time_in_force: Optional[TimeInForce] = None
    price: Optional[str] = None

    def to_params(self) -> Dict[str, ParamValue]:
        """Request fields; unset optional fields are left out of the signature."""
        return {
            'productId': self.product_id,
            'quantity': self.quantity,
            'side': self.side,
            'symbol': self.symbol,
            'type': self.type,
            'timeInForce': self.time_in_force,
            'price': self.price,
        }


def extract_price(data: Any, *fields: str) -> Any:
    """Pull the first present price field out of an object or one-element array."""
    item = data[0] if isinstance(data, list) and data else data
    if not isinstance(item, dict):
        return None
    for name in fields:
        value = item.get(name)
        if value not in (None, ""):
            return value
    return None
