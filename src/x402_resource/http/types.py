"""
Types for the framework-agnostic HTTP payment layer
"""

from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Literal,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from x402_resource.types import (
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    Price,
    ResourceInfo,
    SettleResponse,
    SupportedKind,
    VerifyResponse,
)


@runtime_checkable
class HTTPAdapter(Protocol):
    """Framework-specific access to the incoming request"""

    def get_header(self, name: str) -> Optional[str]:
        """Header value by case-insensitive name, or None"""
        ...

    def get_method(self) -> str: ...

    def get_path(self) -> str: ...

    def get_url(self) -> str: ...

    def get_accept_header(self) -> str: ...

    def get_user_agent(self) -> str: ...


@dataclass
class HTTPRequestContext:
    """Everything the payment layer knows about one request"""

    adapter: HTTPAdapter
    path: str
    method: str
    payment_header: Optional[str] = None


# A value, or a function of the request context producing it (possibly async)
DynamicPayTo = Callable[[HTTPRequestContext], Union[str, Awaitable[str]]]
DynamicPrice = Callable[[HTTPRequestContext], Union[Price, Awaitable[Price]]]


@dataclass
class UnpaidResponseResult:
    """Content type and body for a 402 sent to an API client"""

    content_type: str
    body: Any


UnpaidResponseBody = Callable[
    [HTTPRequestContext], Union[UnpaidResponseResult, Awaitable[UnpaidResponseResult]]
]


def _pick(data: Mapping[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in data:
        return data[camel]
    return data.get(snake, default)


@dataclass
class PaymentOption:
    """One way a client can pay for a route"""

    scheme: str
    pay_to: Union[str, DynamicPayTo]
    price: Union[Price, DynamicPrice]
    network: str
    max_timeout_seconds: Optional[int] = None
    extra: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PaymentOption":
        """Build from a camelCase or snake_case mapping"""
        return cls(
            scheme=data["scheme"],
            pay_to=_pick(data, "payTo", "pay_to"),
            price=data["price"],
            network=data["network"],
            max_timeout_seconds=_pick(data, "maxTimeoutSeconds", "max_timeout_seconds"),
            extra=data.get("extra"),
        )


@dataclass(frozen=True)
class ResolvedPaymentOption:
    """A PaymentOption with every dynamic field evaluated for one request"""

    scheme: str
    pay_to: str
    price: Price
    network: str
    max_timeout_seconds: Optional[int] = None
    extra: Optional[dict[str, Any]] = None


@dataclass
class RouteConfig:
    """Payment configuration for a route"""

    accepts: Union[PaymentOption, list[PaymentOption]]
    resource: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = None
    custom_paywall_html: Optional[str] = None
    # Only used for API clients; browsers get the paywall
    unpaid_response_body: Optional[UnpaidResponseBody] = None
    extensions: Optional[dict[str, Any]] = None

    def payment_options(self) -> list[PaymentOption]:
        """The accepts field as a list"""
        if isinstance(self.accepts, list):
            return list(self.accepts)
        return [self.accepts]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RouteConfig":
        """Build from a camelCase or snake_case mapping"""
        accepts = data.get("accepts")
        if accepts is None:
            raise ValueError("Route config requires 'accepts'")
        raw_options = accepts if isinstance(accepts, list) else [accepts]
        options = [
            opt if isinstance(opt, PaymentOption) else PaymentOption.from_dict(opt)
            for opt in raw_options
        ]
        return cls(
            accepts=options,
            resource=data.get("resource"),
            description=data.get("description"),
            mime_type=_pick(data, "mimeType", "mime_type"),
            custom_paywall_html=_pick(data, "customPaywallHtml", "custom_paywall_html"),
            unpaid_response_body=_pick(data, "unpaidResponseBody", "unpaid_response_body"),
            extensions=data.get("extensions"),
        )


# A single config for every path, or "[VERB ]path" patterns mapped to configs
RoutesConfig = Union[RouteConfig, Mapping[str, Any]]


@dataclass
class PaywallConfig:
    """Paywall page configuration"""

    app_name: Optional[str] = None
    app_logo: Optional[str] = None
    session_token_endpoint: Optional[str] = None
    current_url: Optional[str] = None
    testnet: bool = True


@dataclass
class HTTPResponseInstructions:
    """Response the framework middleware should send"""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    is_html: bool = False


@dataclass(frozen=True)
class NoPaymentRequired:
    type: ClassVar[str] = "no-payment-required"


@dataclass(frozen=True)
class PaymentVerified:
    payment_payload: PaymentPayload
    payment_requirements: PaymentRequirements

    type: ClassVar[str] = "payment-verified"


@dataclass(frozen=True)
class PaymentError:
    response: HTTPResponseInstructions

    type: ClassVar[str] = "payment-error"


HTTPProcessResult = Union[NoPaymentRequired, PaymentVerified, PaymentError]


@dataclass
class ProcessSettleResult:
    """Outcome of settling a verified payment; never raised, always returned"""

    success: bool
    error_reason: Optional[str] = None
    payer: Optional[str] = None
    transaction: Optional[str] = None
    network: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    requirements: Optional[PaymentRequirements] = None


ValidationReason = Literal["missing_scheme", "missing_facilitator"]


@dataclass(frozen=True)
class RouteValidationError:
    """A route payment option the server cannot serve"""

    route_pattern: str
    scheme: str
    network: str
    reason: ValidationReason
    message: str


class ResourceAuthority(Protocol):
    """Requirement building, scheme registry and facilitator access"""

    async def initialize(self) -> None: ...

    def has_registered_scheme(self, network: str, scheme: str) -> bool: ...

    def get_supported_kind(
        self, x402_version: int, network: str, scheme: str
    ) -> Optional[SupportedKind]: ...

    async def build_payment_requirements_from_options(
        self, options: list[ResolvedPaymentOption], context: HTTPRequestContext
    ) -> list[PaymentRequirements]: ...

    def enrich_extensions(
        self, extensions: dict[str, Any], context: HTTPRequestContext
    ) -> dict[str, Any]: ...

    def create_payment_required_response(
        self,
        requirements: list[PaymentRequirements],
        resource_info: Optional[ResourceInfo] = None,
        error: Optional[str] = None,
        extensions: Optional[dict[str, Any]] = None,
    ) -> PaymentRequired: ...

    def find_matching_requirements(
        self, available: list[PaymentRequirements], payload: PaymentPayload
    ) -> Optional[PaymentRequirements]: ...

    async def verify_payment(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> VerifyResponse: ...

    async def settle_payment(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettleResponse: ...
