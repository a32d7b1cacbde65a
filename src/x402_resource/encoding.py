"""
Encoding utilities for x402 HTTP headers

Every header value is base64 of compact JSON with camelCase keys.
"""

import base64
import binascii
import json
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from x402_resource.exceptions import PaymentDecodeError
from x402_resource.types import (
    PaymentPayload,
    PaymentRequired,
    SettlementReceipt,
)

T = TypeVar("T", bound=BaseModel)


def encode_base64(data: str | bytes) -> str:
    """Encode data to base64"""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(data).decode("utf-8")


def decode_base64(data: str) -> str:
    """Decode base64 to string"""
    return base64.b64decode(data, validate=True).decode("utf-8")


def encode_payment_payload(payload: Any) -> str:
    """Encode a model or plain JSON value to base64 for an HTTP header"""
    if isinstance(payload, BaseModel):
        data = payload.model_dump(by_alias=True, exclude_none=True, mode="json")
    else:
        data = payload
    return encode_base64(json.dumps(data, separators=(",", ":")))


def decode_payment_payload(encoded: str, model_class: type[T]) -> T:
    """Decode a base64 HTTP header into ``model_class``

    Raises:
        PaymentDecodeError: If the value is not base64, not JSON (including JSON
            nested too deeply to parse) or not a valid model
    """
    try:
        data = json.loads(decode_base64(encoded))
        return model_class.model_validate(data)
    except (
        binascii.Error,
        UnicodeDecodeError,
        ValueError,
        RecursionError,
        PydanticValidationError,
    ) as e:
        raise PaymentDecodeError(f"Invalid {model_class.__name__} header: {e}") from e


def encode_payment_signature_header(payload: PaymentPayload) -> str:
    return encode_payment_payload(payload)


def decode_payment_signature_header(value: str) -> PaymentPayload:
    return decode_payment_payload(value, PaymentPayload)


def encode_payment_required_header(payment_required: PaymentRequired) -> str:
    return encode_payment_payload(payment_required)


def decode_payment_required_header(value: str) -> PaymentRequired:
    return decode_payment_payload(value, PaymentRequired)


def encode_payment_response_header(receipt: SettlementReceipt) -> str:
    return encode_payment_payload(receipt)


def decode_payment_response_header(value: str) -> SettlementReceipt:
    return decode_payment_payload(value, SettlementReceipt)
