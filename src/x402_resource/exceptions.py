"""
x402 resource server exception hierarchy
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from x402_resource.http.types import RouteValidationError


class X402Error(Exception):
    """x402 base exception"""

    pass


class PaymentDecodeError(X402Error):
    """A payment header could not be decoded"""

    pass


class SettlementError(X402Error):
    """Settlement-related error

    Carries whatever the facilitator reported about the failed settlement so
    callers can surface it without parsing the message.
    """

    def __init__(
        self,
        error_reason: str,
        message: str | None = None,
        payer: str | None = None,
        network: str | None = None,
        transaction: str | None = None,
    ):
        self.error_reason = error_reason
        self.payer = payer
        self.network = network
        self.transaction = transaction
        super().__init__(message or error_reason)


class ConfigurationError(X402Error):
    """Configuration-related error"""

    pass


class UnsupportedNetworkError(ConfigurationError):
    """Unsupported network"""

    pass


class UnknownTokenError(ConfigurationError):
    """Unknown token"""

    pass


class RouteConfigurationError(ConfigurationError):
    """One or more routes declare payment options the server cannot serve"""

    def __init__(self, errors: list["RouteValidationError"]):
        self.errors = errors
        lines = "\n".join(f"  - {e.message}" for e in errors)
        super().__init__(f"x402 Route Configuration Errors:\n{lines}")
