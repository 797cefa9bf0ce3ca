"""Signed order client against an in-process fake exchange."""

from decimal import Decimal

import pytest
from aiohttp.test_utils import unused_port

from mock_maker.exchange_client import ExchangeClient, format_quantity
from mock_maker.protocol import CredentialExpiredError, OrderRejectedError

from conftest import FIXED_TIMESTAMP, split_signature


@pytest.mark.parametrize("quantity,expected", [
    (Decimal("0.0123"), "0.0123"),
    (Decimal("0.010"), "0.01"),
    (Decimal("100"), "100"),
    (Decimal("1E+2"), "100"),
    (Decimal("1.5"), "1.5"),
])
def test_format_quantity(quantity, expected):
    assert format_quantity(quantity) == expected


class TestPlaceOrder:

    @pytest.mark.asyncio
    async def test_signed_form_body(self, fake_exchange, session, signer, btc_pair):
        client = ExchangeClient(fake_exchange.url, "test-key", signer, session)

        order = await client.place_order(btc_pair, "BUY", "LIMIT", "GTC", price="49950.0000", quantity="0.0100")

        assert order.symbol == "BTCUSDCPERP"
        req = fake_exchange.requests[-1]
        assert req.method == "POST"
        assert req.path == "/fapi/v1/order"
        assert req.api_key == "test-key"
        assert req.content_type == "application/x-www-form-urlencoded"

        query_string, signature = split_signature(req.body)
        assert query_string == (
            "price=49950.0000&productId=2&quantity=0.0100&side=BUY&symbol=BTCUSDCPERP"
            f"&timeInForce=GTC&timestamp={FIXED_TIMESTAMP}&type=LIMIT"
        )
        assert signer.verify(query_string, signature)

    @pytest.mark.asyncio
    async def test_defaults_to_pair_quantity(self, fake_exchange, session, signer, btc_pair):
        client = ExchangeClient(fake_exchange.url, "test-key", signer, session)

        order = await client.place_order(btc_pair, "SELL", "LIMIT", "GTC", price="50000.0000")

        assert order.quantity == "0.01"
        assert "quantity=0.01&" in fake_exchange.requests[-1].body

    @pytest.mark.asyncio
    async def test_unset_fields_not_sent(self, fake_exchange, session, signer, btc_pair):
        client = ExchangeClient(fake_exchange.url, "test-key", signer, session)

        await client.place_order(btc_pair, "BUY", "MARKET")

        query_string, _ = split_signature(fake_exchange.requests[-1].body)
        assert "price=" not in query_string
        assert "timeInForce=" not in query_string
        assert "type=MARKET" in query_string

    @pytest.mark.asyncio
    async def test_unauthorized_raises_credential_expired(self, fake_exchange, session, signer, btc_pair):
        fake_exchange.order_responses.append((401, '{"msg": "expired"}'))
        client = ExchangeClient(fake_exchange.url, "test-key", signer, session)

        with pytest.raises(CredentialExpiredError) as excinfo:
            await client.place_order(btc_pair, "BUY", "LIMIT", "GTC", price="1")

        assert excinfo.value.status == 401

    @pytest.mark.asyncio
    async def test_rejection_carries_status_and_body(self, fake_exchange, session, signer, btc_pair):
        fake_exchange.order_responses.append((400, "bad price"))
        client = ExchangeClient(fake_exchange.url, "test-key", signer, session)

        with pytest.raises(OrderRejectedError) as excinfo:
            await client.place_order(btc_pair, "BUY", "LIMIT", "GTC", price="1")

        assert excinfo.value.status == 400
        assert str(excinfo.value) == "BUY LIMIT failed [400]: bad price"


class TestCancelAll:

    @pytest.mark.asyncio
    async def test_cancel_sends_signed_delete(self, fake_exchange, session, signer, btc_pair):
        client = ExchangeClient(fake_exchange.url, "test-key", signer, session)

        assert await client.cancel_all_open_orders(btc_pair) is True

        req = fake_exchange.requests[-1]
        assert req.method == "DELETE"
        assert req.path == "/fapi/v1/openOrders"
        query_string, signature = split_signature(req.body)
        assert query_string == f"symbol=BTCUSDCPERP&timestamp={FIXED_TIMESTAMP}"
        assert signer.verify(query_string, signature)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 500])
    async def test_non_success_is_skipped(self, fake_exchange, session, signer, btc_pair, status):
        fake_exchange.cancel_status = status
        client = ExchangeClient(fake_exchange.url, "test-key", signer, session)

        assert await client.cancel_all_open_orders(btc_pair) is False

    @pytest.mark.asyncio
    async def test_unreachable_backend_is_skipped(self, session, signer, btc_pair):
        client = ExchangeClient(f"http://127.0.0.1:{unused_port()}", "test-key", signer, session)

        assert await client.cancel_all_open_orders(btc_pair) is False
