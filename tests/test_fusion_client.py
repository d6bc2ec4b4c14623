"""Tests for the Fusion+ API client."""

import json

import httpx
import pytest

from conftest import ORDER_HASH, make_quote_data, make_swap_params, make_typed_data
from fusiondonate.config import ConfigurationError, get_settings
from fusiondonate.fusion.client import FusionAPIError, FusionPlusClient, get_fusion_client
from fusiondonate.fusion.hashlock import HashLock, generate_secrets
from fusiondonate.fusion.models import OrderParams, OrderSubmission, Quote, SwapParams

BASE_URL = "https://fusion.test/fusion-plus"


def make_client(handler) -> FusionPlusClient:
    return FusionPlusClient(
        api_key="test-portal-key",
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
    )


class TestQuotes:
    """Tests for quoting."""

    @pytest.mark.asyncio
    async def test_get_quote(self):
        """Query parameters, auth header and big integer parsing."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json=make_quote_data())

        client = make_client(handler)
        quote = await client.get_quote(SwapParams.model_validate(make_swap_params()))

        request = seen["request"]
        assert request.method == "GET"
        assert request.url.path == "/fusion-plus/quoter/v1.0/quote/receive"
        assert request.url.params["srcChain"] == "42161"
        assert request.url.params["dstChain"] == "8453"
        assert request.url.params["amount"] == "100000"
        assert request.url.params["enableEstimate"] == "true"
        assert request.headers["Authorization"] == "Bearer test-portal-key"

        assert quote.quote_id == "quote-1"
        assert quote.src_safety_deposit == 1260000000000
        assert quote.get_preset("fast").secrets_count == 1
        assert quote.get_preset("slow") is None
        assert quote.to_wire()["srcTokenAmount"] == "100000"

    @pytest.mark.asyncio
    async def test_rate_limit_error(self):
        def handler(request):
            return httpx.Response(429, json={"description": "Too many requests"})

        with pytest.raises(FusionAPIError) as exc_info:
            await make_client(handler).get_quote(SwapParams.model_validate(make_swap_params()))

        assert exc_info.value.is_rate_limited
        assert str(exc_info.value) == "Too many requests"

    @pytest.mark.asyncio
    async def test_bad_request_error(self):
        def handler(request):
            return httpx.Response(400, json={"error": "insufficient liquidity"})

        with pytest.raises(FusionAPIError) as exc_info:
            await make_client(handler).get_quote(SwapParams.model_validate(make_swap_params()))

        assert exc_info.value.is_bad_request
        assert exc_info.value.payload == {"error": "insufficient liquidity"}

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FusionAPIError) as exc_info:
            await make_client(handler).get_order_status(ORDER_HASH)

        assert exc_info.value.status_code == 0
        assert not exc_info.value.is_rate_limited


class TestOrders:
    """Tests for order building and submission."""

    @pytest.mark.asyncio
    async def test_create_order(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(
                200,
                json={
                    "typedData": make_typed_data() | {"message": {"salt": "1"}},
                    "orderHash": ORDER_HASH,
                    "extension": "0xabcdef",
                },
            )

        secrets = generate_secrets(1)
        lock, hashes = HashLock.for_secrets(secrets)
        params = SwapParams.model_validate(make_swap_params())
        order_params = OrderParams(
            src_chain_id=42161,
            wallet_address=params.wallet_address,
            receiver=params.wallet_address,
            preset="fast",
            hash_lock=lock.value,
            secret_hashes=hashes,
        )

        order = await make_client(handler).create_order(
            params, Quote.model_validate(make_quote_data()), order_params
        )

        request = seen["request"]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.url.path.endswith("/quoter/v1.0/quote/build")
        assert request.url.params["preset"] == "fast"
        assert request.url.params["receiver"] == params.wallet_address
        assert body["hashLock"] == lock.value
        assert body["secretsHashList"] == hashes
        assert body["quote"]["quoteId"] == "quote-1"

        assert order.order_hash == ORDER_HASH
        assert order.quote_id == "quote-1"
        assert order.extension == "0xabcdef"
        assert order.order_struct == {"salt": "1"}

    @pytest.mark.asyncio
    async def test_create_order_without_hash(self):
        def handler(request):
            return httpx.Response(200, json={"typedData": make_typed_data()})

        params = SwapParams.model_validate(make_swap_params())
        order_params = OrderParams(
            src_chain_id=42161,
            wallet_address=params.wallet_address,
            receiver=params.wallet_address,
            preset="fast",
            hash_lock="0x" + "00" * 32,
            secret_hashes=["0x" + "00" * 32],
        )

        with pytest.raises(FusionAPIError) as exc_info:
            await make_client(handler).create_order(
                params, Quote.model_validate(make_quote_data()), order_params
            )

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_submit_order_omits_missing_secret_hashes(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(201)

        await make_client(handler).submit_order(
            OrderSubmission(
                src_chain_id=42161,
                order={"salt": "1"},
                signature="0x" + "11" * 65,
                extension="0x",
                quote_id="quote-1",
            )
        )

        assert seen["body"] == {
            "srcChainId": 42161,
            "order": {"salt": "1"},
            "signature": "0x" + "11" * 65,
            "extension": "0x",
            "quoteId": "quote-1",
        }


class TestCompletionCalls:
    """Tests for the calls made by the completion worker."""

    @pytest.mark.asyncio
    async def test_order_status(self):
        def handler(request):
            assert request.url.path.endswith(f"/orders/v1.0/order/status/{ORDER_HASH}")
            return httpx.Response(200, json={"orderHash": ORDER_HASH, "status": "executed"})

        status = await make_client(handler).get_order_status(ORDER_HASH)

        assert status.status == "executed"

    @pytest.mark.asyncio
    async def test_ready_fills(self):
        def handler(request):
            assert "ready-to-accept-secret-fills" in request.url.path
            return httpx.Response(
                200,
                json={"fills": [{"idx": 0, "srcEscrowDeployTxHash": "0x01"}, {"idx": 2}]},
            )

        ready = await make_client(handler).get_ready_to_accept_secret_fills(ORDER_HASH)

        assert [fill.idx for fill in ready.fills] == [0, 2]
        assert ready.fills[0].src_escrow_deploy_tx_hash == "0x01"

    @pytest.mark.asyncio
    async def test_submit_secret(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201)

        secret = generate_secrets(1)[0]
        await make_client(handler).submit_secret(ORDER_HASH, secret)

        assert seen["path"].endswith("/relayer/v1.0/submit/secret")
        assert seen["body"] == {"orderHash": ORDER_HASH, "secret": secret}


class TestClientFactory:
    """Tests for the settings-backed client factory."""

    def test_missing_key_is_a_configuration_error(self, monkeypatch):
        monkeypatch.setenv("DEV_PORTAL_KEY", "")
        get_settings.cache_clear()
        get_fusion_client.cache_clear()
        try:
            with pytest.raises(ConfigurationError, match="DEV_PORTAL_KEY"):
                get_fusion_client()
        finally:
            monkeypatch.undo()
            get_settings.cache_clear()
            get_fusion_client.cache_clear()
