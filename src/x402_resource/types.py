"""
Type definitions for x402 protocol messages
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class AssetAmount(BaseModel):
    """Price given directly in atomic units of a specific asset"""

    amount: str
    asset: str
    extra: Optional[dict[str, Any]] = None


# Money ("$0.01", "0.01 USDC", 0.01) or an explicit asset amount
Price = Union[str, int, float, AssetAmount]


class ResourceInfo(BaseModel):
    """Resource information"""

    url: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")

    class Config:
        populate_by_name = True


class PaymentRequirements(BaseModel):
    """Payment requirements offered by the server"""

    scheme: str
    network: str
    amount: str
    asset: str
    pay_to: str = Field(alias="payTo")
    max_timeout_seconds: Optional[int] = Field(None, alias="maxTimeoutSeconds")
    extra: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True


class PaymentRequired(BaseModel):
    """Payment required response (402)"""

    x402_version: int = Field(alias="x402Version")
    error: Optional[str] = None
    resource: Optional[ResourceInfo] = None
    accepts: list[PaymentRequirements]
    extensions: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True


class PaymentPayload(BaseModel):
    """Payment payload sent by client"""

    x402_version: int = Field(alias="x402Version")
    resource: Optional[ResourceInfo] = None
    accepted: PaymentRequirements
    payload: dict[str, Any]
    extensions: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True


class VerifyResponse(BaseModel):
    """Verification response from facilitator"""

    is_valid: bool = Field(alias="isValid")
    invalid_reason: Optional[str] = Field(None, alias="invalidReason")
    payer: Optional[str] = None

    class Config:
        populate_by_name = True


class SettleResponse(BaseModel):
    """Settlement response from facilitator"""

    success: bool
    error_reason: Optional[str] = Field(None, alias="errorReason")
    payer: Optional[str] = None
    transaction: Optional[str] = None
    network: Optional[str] = None

    class Config:
        populate_by_name = True


class SettlementReceipt(SettleResponse):
    """Settlement evidence returned to the client in PAYMENT-RESPONSE"""

    requirements: Optional[PaymentRequirements] = None


class SupportedKind(BaseModel):
    """Supported payment kind"""

    x402_version: int = Field(alias="x402Version")
    scheme: str
    network: str
    extra: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True


class SupportedResponse(BaseModel):
    """Supported response from facilitator"""

    kinds: list[SupportedKind]
    extensions: list[str] = Field(default_factory=list)
    signers: dict[str, list[str]] = Field(default_factory=dict)

    class Config:
        populate_by_name = True
