#!/usr/bin/env python3
"""Mark price lookup: external reference venue, or the exchange's own index with a static fallback."""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import aiohttp

from .config import PairConfig
from .protocol import APIEndpoints, InvalidPriceError, PriceUnavailableError, ResponseCodes, extract_price

logger = logging.getLogger("price_oracle")

PRICE_FIELDS = ("markPrice", "price")


def parse_price(raw: Any, symbol: str) -> Decimal:
    """Positive, finite Decimal or InvalidPriceError; a zero price would build degenerate orders."""
    if isinstance(raw, bool) or raw is None:
        raise InvalidPriceError(f"Invalid markPrice for {symbol}: {raw!r}")
    try:
        price = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise InvalidPriceError(f"Invalid markPrice for {symbol}: {raw!r}") from None
    if not price.is_finite() or price <= 0:
        raise InvalidPriceError(f"Invalid markPrice for {symbol}: {raw!r}")
    return price


class PriceOracle:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        backend_url: str,
        reference_url: str,
        request_timeout: float = 10.0,
    ):
        self.session = session
        self.backend_url = backend_url.rstrip("/")
        self.reference_url = reference_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=request_timeout)

    async def _public_request(self, url: str, params: Dict[str, Any]) -> Any:
        async with self.session.get(url, params=params, timeout=self.timeout) as resp:
            text = await resp.text()
            if resp.status != ResponseCodes.SUCCESS:
                raise PriceUnavailableError(f"HTTP {resp.status} {text}")
            return await resp.json(content_type=None)

    async def get_mark_price(self, pair: PairConfig) -> Decimal:
        if pair.price_source == "backend":
            return await self._backend_price(pair)
        return await self._reference_price(pair)

    async def _reference_price(self, pair: PairConfig) -> Decimal:
        url = self.reference_url + APIEndpoints.PREMIUM_INDEX
        try:
            data = await self._public_request(url, {"symbol": pair.reference_symbol})
        except PriceUnavailableError as exc:
            raise PriceUnavailableError(f"Reference API: {exc}") from None
        return parse_price(extract_price(data, *PRICE_FIELDS), pair.symbol)

    async def _backend_price(self, pair: PairConfig) -> Decimal:
        url = self.backend_url + APIEndpoints.PREMIUM_INDEX
        price: Optional[Decimal] = None
        try:
            data = await self._public_request(url, {"symbol": pair.backend_symbol})
            price = parse_price(extract_price(data, *PRICE_FIELDS), pair.symbol)
        except (PriceUnavailableError, InvalidPriceError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.debug("[%s] Backend mark price unavailable: %s", pair.symbol, exc)

        if price is not None:
            return price
        if pair.fallback_price is not None:
            logger.info("[%s] Using fallback price %s", pair.symbol, pair.fallback_price)
            return pair.fallback_price
        raise PriceUnavailableError(f"No mark price for {pair.symbol} and no fallbackPrice configured")
