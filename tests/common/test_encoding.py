"""
Tests for header encoding
"""

import base64
import json

import pytest

from x402_resource.encoding import (
    decode_base64,
    decode_payment_payload,
    decode_payment_required_header,
    decode_payment_signature_header,
    encode_base64,
    encode_payment_payload,
    encode_payment_required_header,
    encode_payment_signature_header,
)
from x402_resource.exceptions import PaymentDecodeError
from x402_resource.types import PaymentPayload, PaymentRequired, PaymentRequirements, ResourceInfo


def test_base64_round_trip():
    assert decode_base64(encode_base64("héllo")) == "héllo"


def test_payment_payload_round_trip(make_payload):
    payload = make_payload()
    assert decode_payment_signature_header(encode_payment_signature_header(payload)) == payload


def test_header_json_uses_camel_case_and_drops_nulls():
    required = PaymentRequired(
        x402Version=2,
        resource=ResourceInfo(url="https://api.example.com/weather", mimeType="application/json"),
        accepts=[
            PaymentRequirements(
                scheme="exact",
                network="eip155:8453",
                amount="10000",
                asset="0xAsset",
                payTo="0xPayTo",
                maxTimeoutSeconds=300,
            )
        ],
    )

    data = json.loads(base64.b64decode(encode_payment_required_header(required)))

    assert data["x402Version"] == 2
    assert data["resource"] == {
        "url": "https://api.example.com/weather",
        "mimeType": "application/json",
    }
    assert data["accepts"][0]["payTo"] == "0xPayTo"
    assert data["accepts"][0]["maxTimeoutSeconds"] == 300
    assert "error" not in data
    assert "extra" not in data["accepts"][0]

    assert decode_payment_required_header(encode_payment_required_header(required)) == required


def test_plain_dict_is_encoded_compactly():
    encoded = encode_payment_payload({"a": 1, "b": [1, 2]})
    assert base64.b64decode(encoded) == b'{"a":1,"b":[1,2]}'


@pytest.mark.parametrize(
    "value",
    [
        "not-base64!!",
        encode_base64("not json"),
        encode_base64('{"x402Version": 2}'),
        encode_base64("[1, 2, 3]"),
        base64.b64encode(b"\xff\xfe").decode(),
        encode_base64("[" * 100_000),
        encode_base64('{"a":' * 100_000),
    ],
)
def test_invalid_headers_raise_decode_error(value):
    with pytest.raises(PaymentDecodeError):
        decode_payment_payload(value, PaymentPayload)


def test_snake_case_names_accepted_by_models():
    requirements = PaymentRequirements(
        scheme="exact",
        network="eip155:1",
        amount="1",
        asset="0xAsset",
        pay_to="0xPayTo",
        max_timeout_seconds=10,
    )
    assert requirements.pay_to == "0xPayTo"
    assert requirements.model_dump(by_alias=True)["maxTimeoutSeconds"] == 10
