import json

import httpx
import pytest

from icpay_sdk.clients.api_client import IcpayApiClient
from icpay_sdk.exceptions import ApiError, ErrorCode, NetworkError

BASE_URL = "https://api.test.icpay"


def make_client(handler, headers=None):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return IcpayApiClient(BASE_URL, headers=headers, http_client=http_client), http_client


@pytest.mark.anyio
async def test_get_sends_headers_and_params():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"ok": True})

    client, http_client = make_client(handler, headers={"Authorization": "Bearer pk_test"})

    data = await client.get("/sdk/public/ledgers/verified", params={"a": "1", "b": None})

    assert data == {"ok": True}
    assert captured["url"] == f"{BASE_URL}/sdk/public/ledgers/verified?a=1"
    assert captured["auth"] == "Bearer pk_test"
    await http_client.aclose()


@pytest.mark.anyio
async def test_post_sends_json():
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["body"] = request.content
        return httpx.Response(201, json={"id": "pi_1"})

    client, http_client = make_client(handler)

    data = await client.post("/sdk/public/payments/intents", json={"amount": "1"})

    assert data == {"id": "pi_1"}
    assert captured["method"] == "POST"
    assert json.loads(captured["body"]) == {"amount": "1"}
    await http_client.aclose()


@pytest.mark.anyio
async def test_empty_body_returns_none():
    client, http_client = make_client(lambda request: httpx.Response(204))

    assert await client.get("/anything") is None
    await http_client.aclose()


@pytest.mark.anyio
async def test_error_status_becomes_api_error():
    client, http_client = make_client(
        lambda request: httpx.Response(404, json={"message": "Ledger not found"})
    )

    with pytest.raises(ApiError) as exc:
        await client.get("/sdk/public/ledgers/unknown")

    assert exc.value.status_code == 404
    assert exc.value.message == "Ledger not found"
    assert exc.value.code == ErrorCode.API_ERROR
    assert not exc.value.retryable
    await http_client.aclose()


@pytest.mark.anyio
async def test_rate_limit_is_retryable():
    client, http_client = make_client(lambda request: httpx.Response(429, text="slow down"))

    with pytest.raises(ApiError) as exc:
        await client.get("/sdk/public/account")

    assert exc.value.code == ErrorCode.RATE_LIMIT_EXCEEDED
    assert exc.value.retryable
    assert exc.value.message == "HTTP 429"
    await http_client.aclose()


@pytest.mark.anyio
async def test_transport_failure_becomes_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client, http_client = make_client(handler)

    with pytest.raises(NetworkError) as exc:
        await client.get("/sdk/public/account")

    assert exc.value.code == ErrorCode.NETWORK_ERROR
    assert exc.value.retryable
    await http_client.aclose()


@pytest.mark.anyio
async def test_invalid_json_becomes_api_error():
    client, http_client = make_client(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(ApiError):
        await client.get("/sdk/public/account")
    await http_client.aclose()


@pytest.mark.anyio
async def test_close_keeps_injected_client_open():
    client, http_client = make_client(lambda request: httpx.Response(200, json={}))

    await client.close()

    assert not http_client.is_closed
    await http_client.aclose()
