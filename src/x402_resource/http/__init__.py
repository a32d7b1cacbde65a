"""
Framework-agnostic HTTP payment layer
"""

from x402_resource.http.observer import PaymentObserver
from x402_resource.http.paywall import PaywallProvider, is_web_browser
from x402_resource.http.routes import CompiledRoute, RouteTable, normalize_path, parse_route_pattern
from x402_resource.http.types import (
    HTTPAdapter,
    HTTPProcessResult,
    HTTPRequestContext,
    HTTPResponseInstructions,
    NoPaymentRequired,
    PaymentError,
    PaymentOption,
    PaymentVerified,
    PaywallConfig,
    ProcessSettleResult,
    ResolvedPaymentOption,
    ResourceAuthority,
    RouteConfig,
    RoutesConfig,
    RouteValidationError,
    UnpaidResponseResult,
)
from x402_resource.http.x402_http_server import (
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    X402HTTPResourceServer,
    adapter_context,
    resolve_payment_options,
)

__all__ = [
    "X402HTTPResourceServer",
    "adapter_context",
    "resolve_payment_options",
    "PAYMENT_SIGNATURE_HEADER",
    "PAYMENT_REQUIRED_HEADER",
    "PAYMENT_RESPONSE_HEADER",
    # Routing
    "CompiledRoute",
    "RouteTable",
    "normalize_path",
    "parse_route_pattern",
    # Types
    "HTTPAdapter",
    "HTTPRequestContext",
    "HTTPResponseInstructions",
    "HTTPProcessResult",
    "NoPaymentRequired",
    "PaymentVerified",
    "PaymentError",
    "PaymentOption",
    "ResolvedPaymentOption",
    "RouteConfig",
    "RoutesConfig",
    "PaywallConfig",
    "UnpaidResponseResult",
    "ProcessSettleResult",
    "RouteValidationError",
    "ResourceAuthority",
    # Paywall and observability
    "PaywallProvider",
    "is_web_browser",
    "PaymentObserver",
]
