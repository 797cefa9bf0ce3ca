#!/usr/bin/env python3
"""
Mock Market Maker - Settings
Environment/.env loading, pair list parsing and validation, logging setup.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .protocol import ConfigError, to_backend_symbol, to_reference_symbol

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

DEFAULT_BACKEND_URL = "http://localhost:3000"
DEFAULT_REFERENCE_URL = "https://fapi.binance.com"
DEFAULT_SPREAD = "0.001"  # 0.1% per level
DEFAULT_LEVELS = 5
DEFAULT_INTERVAL_MS = 30000
DEFAULT_MAX_ERRORS = 5
DEFAULT_DECIMALS = 4
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_ALERT_TIMEZONE = "Asia/Ho_Chi_Minh"

PRICE_SOURCES = ("reference", "backend")

# Used when neither PAIRS_JSON nor SYMBOL is set
DEFAULT_PAIRS: List[Dict[str, Any]] = [
    {"symbol": "BTC-USDC", "productId": 2, "quantity": "0.0123"},
    {"symbol": "ETH-USDC", "productId": 4, "quantity": "0.2"},
    {"symbol": "SOL-USDC", "productId": 6, "quantity": "1.5"},
    # Not listed on the reference venue
    {"symbol": "0G-USDC", "productId": 8, "quantity": "100", "priceSource": "backend", "fallbackPrice": "0.04"},
]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _decimal(value: Any, name: str) -> Decimal:
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if not result.is_finite():
        raise ConfigError(f"{name} must be a finite number, got {value!r}")
    return result


def _int(value: Any, name: str) -> int:
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


@dataclass(frozen=True)
class PairConfig:
    symbol: str  # display format, e.g. BTC-USDC
    product_id: int
    spread: Decimal
    quantity: Decimal
    price_source: str = "reference"
    fallback_price: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if not self.symbol or not ("-" in self.symbol or "/" in self.symbol):
            raise ConfigError(f"Pair symbol must look like BASE-QUOTE or BASE/QUOTE, got {self.symbol!r}")
        if self.spread <= 0:
            raise ConfigError(f"[{self.symbol}] spread must be > 0")
        if self.quantity <= 0:
            raise ConfigError(f"[{self.symbol}] quantity must be > 0")
        if self.price_source not in PRICE_SOURCES:
            raise ConfigError(f"[{self.symbol}] priceSource must be one of {PRICE_SOURCES}")
        if self.fallback_price is not None and self.fallback_price <= 0:
            raise ConfigError(f"[{self.symbol}] fallbackPrice must be > 0")

    @property
    def backend_symbol(self) -> str:
        return to_backend_symbol(self.symbol)

    @property
    def reference_symbol(self) -> str:
        return to_reference_symbol(self.symbol)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default_spread: Decimal) -> 'PairConfig':
        """Build from a PAIRS_JSON entry (camelCase keys)."""
        if not isinstance(data, Mapping):
            raise ConfigError(f"Pair entry must be an object, got {data!r}")
        for key in ("symbol", "productId", "quantity"):
            if key not in data:
                raise ConfigError(f"Pair entry missing {key}: {dict(data)}")
        symbol = str(data["symbol"])
        fallback = data.get("fallbackPrice")
        return cls(
            symbol=symbol,
            product_id=_int(data["productId"], f"[{symbol}] productId"),
            spread=_decimal(data["spread"], f"[{symbol}] spread") if "spread" in data else default_spread,
            quantity=_decimal(data["quantity"], f"[{symbol}] quantity"),
            price_source=str(data.get("priceSource", "reference")),
            fallback_price=_decimal(fallback, f"[{symbol}] fallbackPrice") if fallback is not None else None,
        )


def parse_pairs(env: Mapping[str, str], default_spread: Decimal) -> Tuple[PairConfig, ...]:
    raw = env.get("PAIRS_JSON")
    if raw:
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid PAIRS_JSON: {exc}") from exc
        if not isinstance(entries, list):
            raise ConfigError("PAIRS_JSON must be a JSON list")
    elif env.get("SYMBOL"):
        # single-pair shorthand
        entries = [{
            "symbol": env["SYMBOL"],
            "productId": env.get("PRODUCT_ID", "1"),
            "quantity": env.get("QUANTITY", "0.01"),
        }]
    else:
        entries = DEFAULT_PAIRS

    pairs = tuple(PairConfig.from_dict(entry, default_spread) for entry in entries)
    if not pairs:
        raise ConfigError("At least one trading pair is required")
    seen = set()
    for pair in pairs:
        if pair.symbol in seen:
            raise ConfigError(f"Duplicate pair symbol: {pair.symbol}")
        seen.add(pair.symbol)
    return pairs


@dataclass(frozen=True)
class Settings:
    """Process settings, loaded once at startup and never mutated."""
    api_key: str = field(repr=False)
    private_key_hex: str = field(repr=False)
    pairs: Tuple[PairConfig, ...]
    backend_url: str = DEFAULT_BACKEND_URL
    reference_url: str = DEFAULT_REFERENCE_URL

    # Cycle
    levels: int = DEFAULT_LEVELS
    interval_ms: int = DEFAULT_INTERVAL_MS
    max_errors: int = DEFAULT_MAX_ERRORS
    price_decimals: int = DEFAULT_DECIMALS
    qty_decimals: int = DEFAULT_DECIMALS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    # Alerts
    telegram_bot_token: str = field(default="", repr=False)
    telegram_chat_id: str = ""
    alert_timezone: str = DEFAULT_ALERT_TIMEZONE

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigError("API_KEY is required. Set it in .env or environment.")
        if len(self.private_key_hex) != 64:
            raise ConfigError("PRIVATE_KEY_HEX must be a 64-character hex string.")
        for name in ("levels", "interval_ms", "max_errors"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name.upper()} must be >= 1")
        for name in ("price_decimals", "qty_decimals"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name.upper()} must be >= 0")
        if self.request_timeout <= 0:
            raise ConfigError("REQUEST_TIMEOUT must be > 0")
        for pair in self.pairs:
            # deepest bid is mark * (1 - spread * levels)
            if pair.spread * self.levels >= 1:
                raise ConfigError(f"[{pair.symbol}] spread {pair.spread} x {self.levels} levels would price bids at or below zero")

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'Settings':
        env = os.environ if env is None else env
        default_spread = _decimal(env.get("SPREAD", DEFAULT_SPREAD), "SPREAD")
        return cls(
            api_key=env.get("API_KEY", "").strip(),
            private_key_hex=env.get("PRIVATE_KEY_HEX", "").strip(),
            pairs=parse_pairs(env, default_spread),
            backend_url=env.get("BACKEND_URL", DEFAULT_BACKEND_URL).rstrip("/"),
            reference_url=env.get("REFERENCE_URL", DEFAULT_REFERENCE_URL).rstrip("/"),
            levels=_int(env.get("LEVELS", DEFAULT_LEVELS), "LEVELS"),
            interval_ms=_int(env.get("INTERVAL_MS", DEFAULT_INTERVAL_MS), "INTERVAL_MS"),
            max_errors=_int(env.get("MAX_ERRORS", DEFAULT_MAX_ERRORS), "MAX_ERRORS"),
            price_decimals=_int(env.get("PRICE_DECIMALS", DEFAULT_DECIMALS), "PRICE_DECIMALS"),
            qty_decimals=_int(env.get("QTY_DECIMALS", DEFAULT_DECIMALS), "QTY_DECIMALS"),
            request_timeout=float(_decimal(env.get("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT), "REQUEST_TIMEOUT")),
            telegram_bot_token=env.get("TELEGRAM_BOT_TOKEN", "").strip(),
            telegram_chat_id=env.get("TELEGRAM_CHAT_ID", "").strip(),
            alert_timezone=env.get("ALERT_TIMEZONE", DEFAULT_ALERT_TIMEZONE),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )


def load_env(env_file: Optional[str] = None) -> None:
    """Read ``.env`` into os.environ; variables already set win."""
    if env_file:
        if not os.path.isfile(env_file):
            raise ConfigError(f"Env file not found: {env_file}")
        load_dotenv(env_file)
    else:
        load_dotenv()

