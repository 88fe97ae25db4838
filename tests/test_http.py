import json

import httpx
import pytest

from checkoutforge.utils.http import HTTPClient, HTTPConfig, HTTPResponse, ProbeRequest, TransportError


def client_for(handler, **config) -> HTTPClient:
    return HTTPClient(HTTPConfig(**config), transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_json_body_keeps_non_finite_numbers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content.decode()
        seen["content_type"] = request.headers["content-type"]
        return httpx.Response(200, json={"ok": True})

    async with client_for(handler) as client:
        response = await client.send(ProbeRequest(
            method="post",
            url="https://shop.test/api/checkout",
            json={"price": float("nan"), "qty": float("-inf")},
        ))

    assert seen["body"] == json.dumps({"price": float("nan"), "qty": float("-inf")}, allow_nan=True)
    assert "NaN" in seen["body"] and "-Infinity" in seen["body"]
    assert seen["content_type"] == "application/json"
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_query_params_and_headers():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.params["qty"] == "[null,0]"
        assert request.headers["x-requested-with"] == "XMLHttpRequest"
        assert request.headers["x-api-key"] == "k"
        return httpx.Response(404, text="missing", headers={"X-Frame-Options": "DENY"})

    async with client_for(handler, headers={"X-Api-Key": "k"}) as client:
        response = await client.send(ProbeRequest(
            method="GET",
            url="https://shop.test/cart",
            headers={"X-Requested-With": "XMLHttpRequest"},
            params={"qty": "[null,0]"},
        ))

    assert isinstance(response, HTTPResponse)
    assert response.status_code == 404
    assert response.body == "missing"
    assert response.headers["x-frame-options"] == "DENY"
    assert response.elapsed >= 0
    assert response.duration_ms == response.elapsed * 1000.0
    assert client.request_count == 1


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = client_for(handler)
    with pytest.raises(TransportError) as excinfo:
        await client.send(ProbeRequest(method="POST", url="https://shop.test/api/checkout", json={}))
    await client.close()

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert client.request_count == 0


@pytest.mark.asyncio
async def test_timeout_is_retried_up_to_limit():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ReadTimeout("slow", request=request)

    async with client_for(handler, max_retries=1) as client:
        with pytest.raises(TransportError):
            await client.send(ProbeRequest(method="GET", url="https://shop.test/"))

    assert len(attempts) == 1


def test_empty_response():
    response = HTTPResponse.empty("https://shop.test/")
    assert response.status_code == 0
    assert response.body == ""
    assert response.duration_ms == 0.0
