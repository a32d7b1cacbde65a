"""
X402ResourceServer - Core payment server for x402 protocol
"""

import logging
from typing import TYPE_CHECKING, Any, Optional, Protocol

from x402_resource.config import NetworkConfig
from x402_resource.mechanisms.server import ServerMechanism
from x402_resource.types import (
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceInfo,
    SettleResponse,
    SupportedKind,
    VerifyResponse,
)

if TYPE_CHECKING:
    from x402_resource.facilitator.facilitator_client import FacilitatorClient
    from x402_resource.http.types import HTTPRequestContext, ResolvedPaymentOption

logger = logging.getLogger(__name__)


class ResourceServerExtension(Protocol):
    """Fills request-specific values into a declared route extension"""

    def enrich_declaration(self, declaration: Any, context: "HTTPRequestContext") -> Any: ...


class X402ResourceServer:
    """
    Core payment server for x402 protocol.

    Manages payment mechanisms and facilitator clients, builds payment
    requirements and routes verify/settle calls to the right facilitator.
    """

    def __init__(
        self,
        facilitators: "FacilitatorClient | list[FacilitatorClient] | None" = None,
    ) -> None:
        """
        Initialize X402ResourceServer.

        Args:
            facilitators: Facilitator client(s); more can be added with add_facilitator
        """
        self._mechanisms: dict[str, dict[str, ServerMechanism]] = {}
        self._facilitators: list["FacilitatorClient"] = []
        self._extensions: dict[str, ResourceServerExtension] = {}
        self._supported: dict[tuple[int, str, str], tuple[SupportedKind, "FacilitatorClient"]] = {}
        self._facilitator_extensions: list[str] = []

        if isinstance(facilitators, list):
            self._facilitators.extend(facilitators)
        elif facilitators is not None:
            self._facilitators.append(facilitators)

    def register(self, network: str, mechanism: ServerMechanism) -> "X402ResourceServer":
        """
        Register a payment mechanism for a network.

        Args:
            network: Network identifier (e.g., "eip155:8453"), or a family
                wildcard such as "eip155:*"
            mechanism: Server mechanism instance

        Returns:
            self for method chaining
        """
        self._mechanisms.setdefault(network, {})[mechanism.scheme()] = mechanism
        return self

    def add_facilitator(self, client: "FacilitatorClient") -> "X402ResourceServer":
        """Add a facilitator client.

        Returns:
            self for method chaining
        """
        self._facilitators.append(client)
        return self

    def register_extension(
        self, key: str, extension: ResourceServerExtension
    ) -> "X402ResourceServer":
        """Register an extension that enriches route declarations under ``key``

        Returns:
            self for method chaining
        """
        self._extensions[key] = extension
        return self

    async def initialize(self) -> None:
        """Fetch supported kinds from every facilitator.

        The first facilitator advertising a (version, network, scheme) kind
        serves it. Unreachable facilitators are logged and skipped so that
        route validation can report what is missing.
        """
        self._supported.clear()
        self._facilitator_extensions = []

        for facilitator in self._facilitators:
            try:
                supported = await facilitator.supported()
            except Exception as e:
                logger.error(
                    f"Failed to fetch supported kinds from facilitator "
                    f"{facilitator.facilitator_id}: {e}",
                    exc_info=True,
                )
                continue

            for kind in supported.kinds:
                key = (kind.x402_version, kind.network, kind.scheme)
                self._supported.setdefault(key, (kind, facilitator))
            for ext in supported.extensions:
                if ext not in self._facilitator_extensions:
                    self._facilitator_extensions.append(ext)

        logger.info(f"Facilitator support loaded: {len(self._supported)} kind(s)")

    def has_registered_scheme(self, network: str, scheme: str) -> bool:
        return self._find_mechanism(network, scheme) is not None

    def get_supported_kind(
        self,
        x402_version: int,
        network: str,
        scheme: str,
    ) -> SupportedKind | None:
        entry = self._supported.get((x402_version, network, scheme))
        return entry[0] if entry else None

    async def build_payment_requirements_from_options(
        self,
        options: list["ResolvedPaymentOption"],
        context: "HTTPRequestContext",
    ) -> list[PaymentRequirements]:
        """Build payment requirements from resolved payment options.

        Options whose scheme is not registered for their network are skipped.

        Args:
            options: Payment options with dynamic fields already resolved
            context: Request context

        Returns:
            List of PaymentRequirements, in option order
        """
        requirements_list: list[PaymentRequirements] = []

        for option in options:
            mechanism = self._find_mechanism(option.network, option.scheme)
            if mechanism is None:
                logger.warning(
                    f"No mechanism registered for scheme {option.scheme} "
                    f"on network {option.network}, skipping option"
                )
                continue

            asset_info = await mechanism.parse_price(option.price, option.network)
            extra = {**asset_info.get("extra", {}), **(option.extra or {})}

            requirements = PaymentRequirements(
                scheme=option.scheme,
                network=option.network,
                amount=str(asset_info["amount"]),
                asset=asset_info["asset"],
                payTo=option.pay_to,
                maxTimeoutSeconds=(
                    option.max_timeout_seconds or NetworkConfig.DEFAULT_MAX_TIMEOUT_SECONDS
                ),
                extra=extra or None,
            )

            supported_kind = self.get_supported_kind(
                NetworkConfig.X402_VERSION, option.network, option.scheme
            )
            requirements = await mechanism.enhance_payment_requirements(
                requirements, supported_kind, self._facilitator_extensions
            )
            requirements_list.append(requirements)

        return requirements_list

    def enrich_extensions(
        self,
        extensions: dict[str, Any],
        context: "HTTPRequestContext",
    ) -> dict[str, Any]:
        """Return a copy of ``extensions`` with registered extensions' values filled in"""
        enriched = dict(extensions)
        for key, declaration in extensions.items():
            extension = self._extensions.get(key)
            if extension is not None:
                enriched[key] = extension.enrich_declaration(declaration, context)
        return enriched

    def create_payment_required_response(
        self,
        requirements: list[PaymentRequirements],
        resource_info: ResourceInfo | dict[str, Any] | None = None,
        error: str | None = None,
        extensions: dict[str, Any] | None = None,
    ) -> PaymentRequired:
        """Create 402 Payment Required response.

        Args:
            requirements: List of payment requirements
            resource_info: Resource information
            error: Human-readable reason payment is (still) required
            extensions: Route extensions, already enriched

        Returns:
            PaymentRequired response
        """
        if isinstance(resource_info, dict):
            resource_info = ResourceInfo.model_validate(resource_info)

        return PaymentRequired(
            x402Version=NetworkConfig.X402_VERSION,
            error=error,
            resource=resource_info,
            accepts=requirements,
            extensions=extensions or None,
        )

    def find_matching_requirements(
        self,
        available: list[PaymentRequirements],
        payload: PaymentPayload,
    ) -> PaymentRequirements | None:
        """Find the offered requirements the payload was built against"""
        accepted = payload.accepted
        for requirements in available:
            if (
                requirements.scheme == accepted.scheme
                and requirements.network == accepted.network
                and requirements.amount == accepted.amount
                and requirements.asset.lower() == accepted.asset.lower()
                and requirements.pay_to.lower() == accepted.pay_to.lower()
            ):
                return requirements
        return None

    async def verify_payment(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment through the facilitator.

        Args:
            payload: Client payment payload
            requirements: Matched payment requirements

        Returns:
            VerifyResponse
        """
        facilitator = self._find_facilitator(payload.x402_version, requirements)
        if facilitator is None:
            return VerifyResponse(isValid=False, invalidReason="no_facilitator")

        return await facilitator.verify(payload, requirements)

    async def settle_payment(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement.

        Args:
            payload: Client payment payload
            requirements: Payment requirements

        Returns:
            SettleResponse with transaction hash
        """
        facilitator = self._find_facilitator(payload.x402_version, requirements)
        if facilitator is None:
            return SettleResponse(
                success=False, errorReason="no_facilitator", network=requirements.network
            )

        return await facilitator.settle(payload, requirements)

    def _find_mechanism(self, network: str, scheme: str) -> Optional[ServerMechanism]:
        mechanisms = self._mechanisms.get(network)
        if mechanisms and scheme in mechanisms:
            return mechanisms[scheme]

        family = network.split(":", 1)[0]
        wildcard = self._mechanisms.get(f"{family}:*")
        if wildcard:
            return wildcard.get(scheme)
        return None

    def _find_facilitator(
        self,
        x402_version: int,
        requirements: PaymentRequirements,
    ) -> "FacilitatorClient | None":
        """Facilitator advertising this kind, else the first one"""
        entry = self._supported.get((x402_version, requirements.network, requirements.scheme))
        if entry is not None:
            return entry[1]
        if self._facilitators:
            return self._facilitators[0]
        return None
