"""
Pytest configuration and fixtures
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from x402_resource.encoding import encode_payment_signature_header
from x402_resource.http import (
    HTTPRequestContext,
    PaymentOption,
    RouteConfig,
    adapter_context,
)
from x402_resource.mechanisms.server import ExactServerMechanism
from x402_resource.server import X402ResourceServer
from x402_resource.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

NETWORK = "eip155:84532"
PAY_TO = "0x209693Bc6afc0C5328bA36FaF03C514EF312287C"
USDC_BASE_SEPOLIA = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


class FakeAdapter:
    """In-memory HTTPAdapter"""

    def __init__(self, path="/weather", method="GET", headers=None, url=None):
        self.path = path
        self.method = method
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.url = url or f"https://api.example.com{path}"

    def get_header(self, name):
        return self.headers.get(name.lower())

    def get_method(self):
        return self.method

    def get_path(self):
        return self.path

    def get_url(self):
        return self.url

    def get_accept_header(self):
        return self.headers.get("accept", "")

    def get_user_agent(self):
        return self.headers.get("user-agent", "")


@pytest.fixture
def network():
    return NETWORK


@pytest.fixture
def pay_to():
    return PAY_TO


@pytest.fixture
def usdc_address():
    return USDC_BASE_SEPOLIA


@pytest.fixture
def browser_headers():
    return {"Accept": "text/html,application/xhtml+xml", "User-Agent": BROWSER_USER_AGENT}


@pytest.fixture
def make_payload():
    """Factory for payment payloads built against the weather route's offer"""

    def _make(amount="10000", pay_to=PAY_TO, asset=USDC_BASE_SEPOLIA, network=NETWORK):
        return PaymentPayload(
            x402Version=2,
            accepted=PaymentRequirements(
                scheme="exact",
                network=network,
                amount=amount,
                asset=asset,
                payTo=pay_to,
                maxTimeoutSeconds=300,
            ),
            payload={"signature": "0xsig", "authorization": {"from": "0xPayer"}},
        )

    return _make


@pytest.fixture
def make_context():
    """Factory for request contexts backed by a FakeAdapter"""

    def _make(path="/weather", method="GET", headers=None, payment=None) -> HTTPRequestContext:
        headers = dict(headers or {})
        if payment is not None:
            headers["PAYMENT-SIGNATURE"] = encode_payment_signature_header(payment)
        return adapter_context(FakeAdapter(path=path, method=method, headers=headers))

    return _make


@pytest.fixture
def mock_facilitator():
    """Facilitator that supports exact payments on Base Sepolia and accepts everything"""
    facilitator = MagicMock()
    facilitator.facilitator_id = "mock-facilitator"
    facilitator.supported = AsyncMock(
        return_value=SupportedResponse(
            kinds=[SupportedKind(x402Version=2, scheme="exact", network=NETWORK)]
        )
    )
    facilitator.verify = AsyncMock(return_value=VerifyResponse(isValid=True, payer="0xPayer"))
    facilitator.settle = AsyncMock(
        return_value=SettleResponse(
            success=True, payer="0xPayer", transaction="0xabc123", network=NETWORK
        )
    )
    return facilitator


@pytest.fixture
def resource_server(mock_facilitator):
    return X402ResourceServer(mock_facilitator).register("eip155:*", ExactServerMechanism())


@pytest.fixture
def weather_route():
    return RouteConfig(
        accepts=PaymentOption(scheme="exact", pay_to=PAY_TO, price="$0.01", network=NETWORK),
        description="Weather data",
        mime_type="application/json",
    )
