"""
Shared fixtures: in-process fake exchange, reference venue and Telegram API
served by aiohttp's TestServer, plus a deterministic signer.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from mock_maker.alerts import Notifier
from mock_maker.config import PairConfig
from mock_maker.protocol import APIEndpoints
from mock_maker.signer import RequestSigner

# RFC 8032 test vector 1
TEST_SEED_HEX = "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"
TEST_PUBLIC_KEY_HEX = "d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a"
FIXED_TIMESTAMP = 1700000000000


def split_signature(body: str) -> Tuple[str, str]:
    """Return (signed query string, decoded base64 signature)."""
    query_string, _, signature = body.rpartition("&signature=")
    return query_string, unquote(signature)


@dataclass
class RecordedRequest:
    method: str
    path: str
    query: Dict[str, str]
    body: str
    api_key: Optional[str]
    content_type: str


class FakeExchange:
    """Binance-style /fapi routes with scripted responses."""

    def __init__(self):
        self.url = ""
        self.requests: List[RecordedRequest] = []
        self.cancel_status = 200
        self.order_responses: List[Tuple[int, str]] = []  # consumed in order, then 200
        self.premium: Dict[str, Any] = {}
        self.premium_status = 200

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_delete(APIEndpoints.OPEN_ORDERS, self.handle_cancel)
        app.router.add_post(APIEndpoints.ORDER, self.handle_order)
        app.router.add_get(APIEndpoints.PREMIUM_INDEX, self.handle_premium)
        return app

    def orders(self) -> List[RecordedRequest]:
        return [r for r in self.requests if r.path == APIEndpoints.ORDER]

    async def _record(self, request: web.Request) -> RecordedRequest:
        recorded = RecordedRequest(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            body=await request.text(),
            api_key=request.headers.get("x-api-key"),
            content_type=request.content_type,
        )
        self.requests.append(recorded)
        return recorded

    async def handle_cancel(self, request: web.Request) -> web.Response:
        await self._record(request)
        return web.json_response({"code": self.cancel_status}, status=self.cancel_status)

    async def handle_order(self, request: web.Request) -> web.Response:
        await self._record(request)
        status, text = self.order_responses.pop(0) if self.order_responses else (200, '{"orderId": 1}')
        return web.Response(status=status, text=text)

    async def handle_premium(self, request: web.Request) -> web.Response:
        await self._record(request)
        if self.premium_status != 200:
            return web.Response(status=self.premium_status, text="upstream error")
        symbol = request.query.get("symbol", "")
        if symbol not in self.premium:
            return web.json_response({"code": -1121, "msg": "Invalid symbol."}, status=400)
        return web.json_response(self.premium[symbol])


class FakeTelegram:
    def __init__(self):
        self.url = ""
        self.messages: List[Dict[str, Any]] = []
        self.tokens: List[str] = []
        self.status = 200

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/bot{token}/sendMessage", self.handle_send)
        return app

    async def handle_send(self, request: web.Request) -> web.Response:
        self.tokens.append(request.match_info["token"])
        self.messages.append(await request.json())
        return web.json_response({"ok": self.status == 200}, status=self.status)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.messages: List[str] = []

    async def notify(self, message: str) -> None:
        self.messages.append(message)


async def _serve(fake):
    server = TestServer(fake.app())
    await server.start_server()
    fake.url = f"http://{server.host}:{server.port}"
    return server


@pytest_asyncio.fixture
async def fake_exchange():
    fake = FakeExchange()
    server = await _serve(fake)
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def fake_reference():
    fake = FakeExchange()
    server = await _serve(fake)
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def fake_telegram():
    fake = FakeTelegram()
    server = await _serve(fake)
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def session():
    async with aiohttp.ClientSession() as client_session:
        yield client_session


@pytest.fixture
def signer() -> RequestSigner:
    return RequestSigner(TEST_SEED_HEX, clock=lambda: FIXED_TIMESTAMP)


@pytest.fixture
def btc_pair() -> PairConfig:
    return PairConfig("BTC-USDC", 2, Decimal("0.001"), Decimal("0.01"))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
