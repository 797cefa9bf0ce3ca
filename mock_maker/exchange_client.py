#!/usr/bin/env python3
"""Signed REST client for the exchange under test (Binance-style /fapi routes)."""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, Optional, Tuple

import aiohttp

from .config import PairConfig
from .protocol import (
    APIEndpoints,
    CredentialExpiredError,
    OrderIntent,
    OrderRejectedError,
    OrderSide,
    OrderType,
    ParamValue,
    ResponseCodes,
    TimeInForce,
)
from .signer import RequestSigner

logger = logging.getLogger("exchange_client")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
API_KEY_HEADER = "x-api-key"
DEFAULT_REQUEST_TIMEOUT = 10.0


def format_quantity(quantity: Decimal) -> str:
    """Plain decimal notation; str(Decimal) would give '1E+2' for 100."""
    text = format(quantity, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def is_success(status: int) -> bool:
    return 200 <= status < 300


class ExchangeClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        signer: RequestSigner,
        session: aiohttp.ClientSession,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.signer = signer
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=request_timeout)

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": FORM_CONTENT_TYPE, API_KEY_HEADER: self.api_key}

    async def _signed_request(self, method: str, path: str, params: Dict[str, ParamValue]) -> Tuple[int, str]:
        # Signed per call: the payload embeds the current timestamp.
        body = self.signer.build_signed_payload(params)
        url = self.base_url + path
        async with self.session.request(method, url, data=body, headers=self._headers(), timeout=self.timeout) as resp:
            return resp.status, await resp.text()

    async def cancel_all_open_orders(self, pair: PairConfig) -> bool:
        """Best-effort cancel; stale orders may survive but placement goes ahead."""
        try:
            status, _ = await self._signed_request("DELETE", APIEndpoints.OPEN_ORDERS, {"symbol": pair.backend_symbol})
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("[%s] Cancel orders... skipped (%s)", pair.symbol, exc)
            return False
        if is_success(status):
            logger.info("[%s] Cancel orders... done", pair.symbol)
            return True
        logger.info("[%s] Cancel orders... skipped (%s)", pair.symbol, status)
        return False

    async def submit(self, order: OrderIntent) -> None:
        status, text = await self._signed_request("POST", APIEndpoints.ORDER, order.to_params())
        if is_success(status):
            return
        if status == ResponseCodes.UNAUTHORIZED:
            raise CredentialExpiredError(status)
        raise OrderRejectedError(order.side, order.type, status, text)

    async def place_order(
        self,
        pair: PairConfig,
        side: OrderSide,
        order_type: OrderType = "LIMIT",
        time_in_force: Optional[TimeInForce] = None,
        price: Optional[str] = None,
        quantity: Optional[str] = None,
    ) -> OrderIntent:
        order = OrderIntent(
            product_id=pair.product_id,
            symbol=pair.backend_symbol,
            side=side,
            type=order_type,
            quantity=quantity if quantity is not None else format_quantity(pair.quantity),
            time_in_force=time_in_force,
            price=price,
        )
        await self.submit(order)
        return order

