"""
x402-resource - HTTP 402 payment-required resource server for Python

Decides which requests need payment, verifies payments through a facilitator
and settles them once the protected handler has produced its response.
"""

__version__ = "0.1.0"

from x402_resource.exceptions import (
    ConfigurationError,
    PaymentDecodeError,
    RouteConfigurationError,
    SettlementError,
    UnknownTokenError,
    UnsupportedNetworkError,
    X402Error,
)
from x402_resource.tokens import TokenInfo, TokenRegistry
from x402_resource.types import (
    AssetAmount,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceInfo,
    SettlementReceipt,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

__all__ = [
    "__version__",
    # Types
    "AssetAmount",
    "ResourceInfo",
    "PaymentPayload",
    "PaymentRequirements",
    "PaymentRequired",
    "VerifyResponse",
    "SettleResponse",
    "SettlementReceipt",
    "SupportedKind",
    "SupportedResponse",
    # Exceptions
    "X402Error",
    "PaymentDecodeError",
    "SettlementError",
    "ConfigurationError",
    "RouteConfigurationError",
    "UnsupportedNetworkError",
    "UnknownTokenError",
    # Token registry
    "TokenInfo",
    "TokenRegistry",
]
