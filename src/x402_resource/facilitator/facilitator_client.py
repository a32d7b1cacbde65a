"""
FacilitatorClient - Client for communicating with facilitator service
"""

import logging
from typing import Any

import httpx

from x402_resource.config import NetworkConfig
from x402_resource.exceptions import SettlementError
from x402_resource.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


class FacilitatorClient:
    """
    Client for communicating with facilitator service.

    Handles verify, settle and supported queries.
    """

    def __init__(
        self,
        base_url: str = NetworkConfig.DEFAULT_FACILITATOR_URL,
        headers: dict[str, str] | None = None,
        facilitator_id: str | None = None,
        timeout: float = NetworkConfig.DEFAULT_FACILITATOR_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize facilitator client.

        Args:
            base_url: Facilitator service base URL
            headers: Custom HTTP headers (e.g., Authorization)
            facilitator_id: Unique identifier for this facilitator
            timeout: Request timeout in seconds
            transport: Optional httpx transport (e.g. for testing)
        """
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = timeout
        self._transport = transport
        self.facilitator_id = facilitator_id or base_url
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def supported(self) -> SupportedResponse:
        """
        Query facilitator supported capabilities.

        Returns:
            SupportedResponse with supported networks/schemes
        """
        client = await self._get_client()
        response = await client.get("/supported")
        response.raise_for_status()
        return SupportedResponse.model_validate(response.json())

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment (without executing on-chain transaction).

        A rejected payment comes back as ``isValid=False``; only transport and
        server failures raise.

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            VerifyResponse
        """
        client = await self._get_client()
        response = await client.post("/verify", json=self._request_body(payload, requirements))

        body = self._json_or_none(response)
        if response.is_error and not (isinstance(body, dict) and "isValid" in body):
            response.raise_for_status()
        return VerifyResponse.model_validate(body)

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement (on-chain transaction).

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            SettleResponse with transaction hash

        Raises:
            SettlementError: If the facilitator answers with an error status
        """
        client = await self._get_client()
        response = await client.post("/settle", json=self._request_body(payload, requirements))

        body = self._json_or_none(response)
        if response.is_error:
            logger.error(f"Facilitator settle failed with HTTP {response.status_code}: {body}")
            details = body if isinstance(body, dict) else {}
            reason = details.get("errorReason") or f"facilitator_http_{response.status_code}"
            raise SettlementError(
                reason,
                message=details.get("errorMessage"),
                payer=details.get("payer"),
                network=details.get("network") or requirements.network,
                transaction=details.get("transaction") or "",
            )
        return SettleResponse.model_validate(body)

    @staticmethod
    def _request_body(
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> dict[str, Any]:
        return {
            "x402Version": payload.x402_version,
            "paymentPayload": payload.model_dump(by_alias=True, exclude_none=True),
            "paymentRequirements": requirements.model_dump(by_alias=True, exclude_none=True),
        }

    @staticmethod
    def _json_or_none(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None
