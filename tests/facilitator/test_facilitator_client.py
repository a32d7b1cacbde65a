"""
Tests for FacilitatorClient against a mocked HTTP transport
"""

import json

import httpx
import pytest

from x402_resource.exceptions import SettlementError
from x402_resource.facilitator import FacilitatorClient

BASE_URL = "https://facilitator.test"


def _client(handler, **kwargs):
    return FacilitatorClient(base_url=BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.anyio
async def test_supported():
    def handler(request):
        assert request.method == "GET"
        assert str(request.url) == f"{BASE_URL}/supported"
        return httpx.Response(
            200,
            json={
                "kinds": [{"x402Version": 2, "scheme": "exact", "network": "eip155:8453"}],
                "extensions": ["bazaar"],
                "signers": {"eip155:*": ["0xSigner"]},
            },
        )

    client = _client(handler)
    supported = await client.supported()

    assert supported.kinds[0].network == "eip155:8453"
    assert supported.extensions == ["bazaar"]
    assert supported.signers == {"eip155:*": ["0xSigner"]}
    await client.close()


@pytest.mark.anyio
async def test_supported_http_error_raises():
    client = _client(lambda request: httpx.Response(503))
    with pytest.raises(httpx.HTTPStatusError):
        await client.supported()


@pytest.mark.anyio
async def test_verify_sends_payload_and_requirements(make_payload):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"isValid": True, "payer": "0xPayer"})

    client = _client(handler, headers={"Authorization": "Bearer secret"})
    payload = make_payload()

    result = await client.verify(payload, payload.accepted)

    assert result.is_valid is True
    assert result.payer == "0xPayer"
    assert seen["path"] == "/verify"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["x402Version"] == 2
    assert seen["body"]["paymentPayload"]["accepted"]["payTo"] == payload.accepted.pay_to
    assert seen["body"]["paymentRequirements"]["amount"] == "10000"


@pytest.mark.anyio
async def test_verify_rejection_with_error_status(make_payload):
    def handler(request):
        return httpx.Response(400, json={"isValid": False, "invalidReason": "invalid_signature"})

    payload = make_payload()
    result = await _client(handler).verify(payload, payload.accepted)

    assert result.is_valid is False
    assert result.invalid_reason == "invalid_signature"


@pytest.mark.anyio
async def test_verify_server_error_raises(make_payload):
    client = _client(lambda request: httpx.Response(500, text="Internal Server Error"))
    payload = make_payload()

    with pytest.raises(httpx.HTTPStatusError):
        await client.verify(payload, payload.accepted)


@pytest.mark.anyio
async def test_settle_success(make_payload):
    def handler(request):
        assert request.url.path == "/settle"
        return httpx.Response(
            200,
            json={
                "success": True,
                "payer": "0xPayer",
                "transaction": "0xabc",
                "network": "eip155:84532",
            },
        )

    payload = make_payload()
    result = await _client(handler).settle(payload, payload.accepted)

    assert result.success is True
    assert result.transaction == "0xabc"


@pytest.mark.anyio
async def test_settle_error_status_raises_structured_error(make_payload):
    def handler(request):
        return httpx.Response(
            400,
            json={
                "success": False,
                "errorReason": "insufficient_funds",
                "errorMessage": "Payer balance too low",
                "payer": "0xPayer",
                "network": "eip155:84532",
                "transaction": "",
            },
        )

    payload = make_payload()
    with pytest.raises(SettlementError) as exc_info:
        await _client(handler).settle(payload, payload.accepted)

    error = exc_info.value
    assert error.error_reason == "insufficient_funds"
    assert str(error) == "Payer balance too low"
    assert error.payer == "0xPayer"
    assert error.network == "eip155:84532"
    assert error.transaction == ""


@pytest.mark.anyio
async def test_settle_error_without_body(make_payload, network):
    payload = make_payload()
    client = _client(lambda request: httpx.Response(502, text="Bad Gateway"))

    with pytest.raises(SettlementError) as exc_info:
        await client.settle(payload, payload.accepted)

    error = exc_info.value
    assert error.error_reason == "facilitator_http_502"
    assert error.network == network
    assert error.transaction == ""


@pytest.mark.anyio
async def test_client_reused_until_closed():
    client = _client(lambda request: httpx.Response(200, json={"kinds": []}))

    first = await client._get_client()
    assert await client._get_client() is first

    await client.close()
    assert client._http_client is None


def test_facilitator_id_defaults_to_url():
    assert FacilitatorClient(base_url=BASE_URL + "/").facilitator_id == BASE_URL + "/"
    assert FacilitatorClient(facilitator_id="primary").facilitator_id == "primary"
