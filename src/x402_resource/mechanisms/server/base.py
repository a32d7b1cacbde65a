"""
Server mechanism base interface
"""

from abc import ABC, abstractmethod
from typing import Any

from x402_resource.types import PaymentRequirements, Price, SupportedKind


class ServerMechanism(ABC):
    """
    Abstract base class for server payment mechanisms.

    Responsible for parsing prices and enhancing payment requirements for one
    scheme. Signature checks belong to the facilitator, not here.
    """

    @abstractmethod
    def scheme(self) -> str:
        """Get the payment scheme name"""
        pass

    @abstractmethod
    async def parse_price(self, price: Price, network: str) -> dict[str, Any]:
        """
        Parse a price into an asset amount.

        Args:
            price: Money price (e.g., "$0.01", "0.01 USDC") or AssetAmount
            network: Network identifier

        Returns:
            Dict containing amount (atomic units), asset and optional extra
        """
        pass

    @abstractmethod
    async def enhance_payment_requirements(
        self,
        requirements: PaymentRequirements,
        supported_kind: SupportedKind | None,
        extensions: list[str],
    ) -> PaymentRequirements:
        """
        Enhance payment requirements with scheme metadata.

        Args:
            requirements: Base payment requirements
            supported_kind: Facilitator-advertised kind for this scheme/network, if known
            extensions: Extension keys the facilitator advertises

        Returns:
            Enhanced PaymentRequirements
        """
        pass
