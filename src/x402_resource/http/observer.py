"""
Payment event observer
"""

import logging
from typing import TYPE_CHECKING, Optional

from x402_resource.logging_config import get_logger

if TYPE_CHECKING:
    from x402_resource.http.routes import CompiledRoute
    from x402_resource.http.types import HTTPRequestContext, ProcessSettleResult
    from x402_resource.types import PaymentRequirements


class PaymentObserver:
    """
    Receives the payment layer's events.

    The default implementation writes them to the ``x402_resource.http``
    logger. Subclass and override any method to send them elsewhere.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or get_logger("x402_resource.http")

    def route_matched(self, context: "HTTPRequestContext", route: "CompiledRoute") -> None:
        self._logger.debug(
            f"Route matched: {context.method} {context.path} -> {route.pattern!r}"
        )

    def payment_decode_failed(self, header: str, error: Exception) -> None:
        self._logger.warning(
            f"Failed to decode PAYMENT-SIGNATURE header: {error} "
            f"(first 200 chars: {header[:200]})"
        )

    def verification_completed(
        self,
        context: "HTTPRequestContext",
        requirements: Optional["PaymentRequirements"],
        is_valid: bool,
        reason: Optional[str] = None,
    ) -> None:
        if is_valid and requirements is not None:
            self._logger.info(
                f"Payment verified for {context.method} {context.path} "
                f"({requirements.scheme} on {requirements.network})"
            )
        else:
            self._logger.warning(
                f"Payment verification failed for {context.method} {context.path}: {reason}"
            )

    def settlement_completed(self, result: "ProcessSettleResult") -> None:
        if result.success:
            self._logger.info(
                f"Payment settled on {result.network}: transaction={result.transaction}"
            )
        else:
            self._logger.error(
                f"Payment settlement failed on {result.network}: {result.error_reason}"
            )
