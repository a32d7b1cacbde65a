"""
ExactServerMechanism - server side of the "exact" payment scheme.
"""

import logging
from typing import Any

from x402_resource.mechanisms.server.base import ServerMechanism
from x402_resource.tokens import TokenRegistry
from x402_resource.types import AssetAmount, PaymentRequirements, Price, SupportedKind

SCHEME_EXACT = "exact"


class ExactServerMechanism(ServerMechanism):
    """Exact-amount payments in a registered token.

    One instance serves every network it is registered for; token lookups are
    made against the network of each request.
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger(self.__class__.__name__)

    def scheme(self) -> str:
        return SCHEME_EXACT

    async def parse_price(self, price: Price, network: str) -> dict[str, Any]:
        """Parse price into asset amount.

        Args:
            price: Money price or AssetAmount (dicts are accepted as AssetAmount)
            network: Network identifier

        Returns:
            Dict containing amount, asset and extra
        """
        if isinstance(price, dict):
            price = AssetAmount.model_validate(price)

        if isinstance(price, AssetAmount):
            if not price.asset:
                raise ValueError(f"Asset address required for AssetAmount on {network}")
            return {
                "amount": price.amount,
                "asset": price.asset,
                "extra": dict(price.extra or {}),
            }

        self._logger.debug(f"Parsing price: {price} on network {network}")
        parsed = TokenRegistry.parse_price(price, network)
        return {
            "amount": str(parsed["amount"]),
            "asset": parsed["asset"],
            "extra": {"name": parsed["name"], "version": parsed["version"]},
        }

    async def enhance_payment_requirements(
        self,
        requirements: PaymentRequirements,
        supported_kind: SupportedKind | None,
        extensions: list[str],
    ) -> PaymentRequirements:
        """Add token metadata and facilitator-provided extra fields"""
        extra = dict(requirements.extra or {})

        token = TokenRegistry.find_by_address(requirements.network, requirements.asset)
        if token:
            extra.setdefault("name", token.name)
            extra.setdefault("version", token.version)
            extra.setdefault("decimals", token.decimals)

        if supported_kind and supported_kind.extra:
            for key, value in supported_kind.extra.items():
                extra.setdefault(key, value)

        return requirements.model_copy(update={"extra": extra or None})
