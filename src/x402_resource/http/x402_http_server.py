"""
X402HTTPResourceServer - framework-agnostic HTTP payment handling
"""

import inspect
import logging
from typing import Any, Optional

from x402_resource.config import NetworkConfig
from x402_resource.encoding import (
    decode_payment_signature_header,
    encode_payment_required_header,
    encode_payment_response_header,
)
from x402_resource.exceptions import PaymentDecodeError, RouteConfigurationError, SettlementError
from x402_resource.http.observer import PaymentObserver
from x402_resource.http.paywall import PaywallProvider, generate_paywall_html, is_web_browser
from x402_resource.http.routes import CompiledRoute, RouteTable
from x402_resource.http.types import (
    HTTPAdapter,
    HTTPProcessResult,
    HTTPRequestContext,
    HTTPResponseInstructions,
    NoPaymentRequired,
    PaymentError,
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
from x402_resource.types import (
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceInfo,
    SettlementReceipt,
    SettleResponse,
)

logger = logging.getLogger(__name__)

PAYMENT_SIGNATURE_HEADER = "PAYMENT-SIGNATURE"
PAYMENT_REQUIRED_HEADER = "PAYMENT-REQUIRED"
PAYMENT_RESPONSE_HEADER = "PAYMENT-RESPONSE"

NO_MATCHING_REQUIREMENTS = "No matching payment requirements"


async def _resolve(value: Any, context: HTTPRequestContext) -> Any:
    """Evaluate a dynamic field once; plain values pass through"""
    if not callable(value):
        return value
    result = value(context)
    if inspect.isawaitable(result):
        result = await result
    return result


async def resolve_payment_options(
    route_config: RouteConfig,
    context: HTTPRequestContext,
) -> list[ResolvedPaymentOption]:
    """Normalize a route's accepts field and evaluate its dynamic fields.

    Options are resolved left to right; each callable runs exactly once.
    """
    resolved = []
    for option in route_config.payment_options():
        pay_to = await _resolve(option.pay_to, context)
        price = await _resolve(option.price, context)
        resolved.append(
            ResolvedPaymentOption(
                scheme=option.scheme,
                pay_to=pay_to,
                price=price,
                network=option.network,
                max_timeout_seconds=option.max_timeout_seconds,
                extra=dict(option.extra) if option.extra else None,
            )
        )
    return resolved


class X402HTTPResourceServer:
    """
    HTTP layer over a Resource Authority.

    Decides per request whether payment is required, verifies submitted
    payments and settles them after the protected handler has run.

    Usage:
        http_server = X402HTTPResourceServer(server, {
            "GET /weather": RouteConfig(accepts=PaymentOption(
                scheme="exact", pay_to="0x...", price="$0.01", network="eip155:84532",
            )),
        })
        await http_server.initialize()
    """

    def __init__(
        self,
        server: ResourceAuthority,
        routes: RoutesConfig,
        observer: Optional[PaymentObserver] = None,
    ) -> None:
        """
        Args:
            server: Resource Authority building requirements and talking to facilitators
            routes: A single RouteConfig for all paths, or pattern -> RouteConfig
            observer: Receives payment events (default: logs them)

        Raises:
            ConfigurationError: If the route table is malformed
        """
        self._server = server
        self._routes = RouteTable(routes)
        self._observer = observer or PaymentObserver()
        self._paywall_provider: Optional[PaywallProvider] = None

    @property
    def server(self) -> ResourceAuthority:
        return self._server

    @property
    def routes(self) -> tuple[CompiledRoute, ...]:
        return self._routes.routes

    async def initialize(self) -> None:
        """
        Initialize the Resource Authority and validate every route.

        Raises:
            RouteConfigurationError: Listing every payment option without a
                registered scheme or facilitator support
        """
        await self._server.initialize()

        errors = self._validate_route_configuration()
        if errors:
            raise RouteConfigurationError(errors)

    def register_paywall_provider(self, provider: PaywallProvider) -> "X402HTTPResourceServer":
        """Register a custom paywall page renderer

        Returns:
            self for method chaining
        """
        self._paywall_provider = provider
        return self

    def requires_payment(self, context: HTTPRequestContext) -> bool:
        return self._routes.match(context.path, context.method) is not None

    async def process_http_request(
        self,
        context: HTTPRequestContext,
        paywall_config: Optional[PaywallConfig] = None,
    ) -> HTTPProcessResult:
        """
        Decide what to do with a request.

        Args:
            context: Request context
            paywall_config: Paywall settings for browser clients

        Returns:
            NoPaymentRequired, PaymentVerified (run the handler, then settle)
            or PaymentError (send the enclosed response)
        """
        route = self._routes.match(context.path, context.method)
        if route is None:
            return NoPaymentRequired()

        self._observer.route_matched(context, route)
        route_config = route.config
        adapter = context.adapter

        resource_info = ResourceInfo(
            url=route_config.resource or adapter.get_url(),
            description=route_config.description or "",
            mimeType=route_config.mime_type or "",
        )

        try:
            options = await resolve_payment_options(route_config, context)
            requirements = await self._server.build_payment_requirements_from_options(
                options, context
            )
        except Exception as e:
            logger.error(f"Failed to build payment requirements for {route.pattern!r}: {e}")
            return PaymentError(
                response=self._server_error(f"Failed to build payment requirements: {e}")
            )

        if not requirements:
            return PaymentError(
                response=self._server_error("No supported payment options available")
            )

        extensions = route_config.extensions
        if extensions:
            try:
                extensions = self._server.enrich_extensions(extensions, context)
            except Exception as e:
                logger.error(f"Failed to enrich extensions for {route.pattern!r}: {e}")
                return PaymentError(
                    response=self._server_error(f"Failed to enrich extensions: {e}")
                )

        payment_payload = self._extract_payment(context)

        if payment_payload is None:
            is_browser = is_web_browser(adapter)
            unpaid_body = None
            if not is_browser:
                unpaid_body = await self._resolve_unpaid_body(route_config, context)
            return self._payment_required_error(
                requirements,
                resource_info,
                "Payment required",
                extensions,
                is_browser,
                paywall_config,
                route_config.custom_paywall_html,
                unpaid_body,
            )

        matching: Optional[PaymentRequirements] = None
        reason: Optional[str] = None
        try:
            matching = self._server.find_matching_requirements(requirements, payment_payload)
            if matching is None:
                reason = NO_MATCHING_REQUIREMENTS
            else:
                verify_result = await self._server.verify_payment(payment_payload, matching)
                if not verify_result.is_valid:
                    reason = verify_result.invalid_reason or "Payment verification failed"
        except Exception as e:
            reason = str(e) or "Payment verification failed"

        if reason is not None or matching is None:
            self._observer.verification_completed(context, matching, False, reason)
            return self._payment_required_error(
                requirements, resource_info, reason, extensions, False, paywall_config
            )

        self._observer.verification_completed(context, matching, True)
        return PaymentVerified(payment_payload=payment_payload, payment_requirements=matching)

    async def process_settlement(
        self,
        payment_payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> ProcessSettleResult:
        """
        Settle a payment returned by ``process_http_request`` as verified.

        Call once, after the protected handler succeeded. Failures are
        returned, not raised.

        Args:
            payment_payload: The verified payment payload
            requirements: The requirements it was verified against

        Returns:
            ProcessSettleResult; on success ``headers`` holds PAYMENT-RESPONSE
        """
        try:
            settle_response = await self._server.settle_payment(payment_payload, requirements)
        except SettlementError as e:
            result = ProcessSettleResult(
                success=False,
                error_reason=e.error_reason or str(e),
                payer=e.payer,
                network=e.network,
                transaction=e.transaction,
            )
        except Exception as e:
            result = ProcessSettleResult(
                success=False,
                error_reason=str(e) or "Settlement failed",
                network=requirements.network,
                transaction="",
            )
        else:
            if settle_response.success:
                result = ProcessSettleResult(
                    success=True,
                    payer=settle_response.payer,
                    transaction=settle_response.transaction,
                    network=settle_response.network,
                    headers=self._create_settlement_headers(settle_response, requirements),
                    requirements=requirements,
                )
            else:
                result = ProcessSettleResult(
                    success=False,
                    error_reason=settle_response.error_reason or "Settlement failed",
                    payer=settle_response.payer,
                    transaction=settle_response.transaction,
                    network=settle_response.network,
                )

        self._observer.settlement_completed(result)
        return result

    def _validate_route_configuration(self) -> list[RouteValidationError]:
        """Check every option of every route; never stops at the first failure"""
        errors: list[RouteValidationError] = []

        for route in self._routes.routes:
            for option in route.config.payment_options():
                if not self._server.has_registered_scheme(option.network, option.scheme):
                    errors.append(
                        RouteValidationError(
                            route_pattern=route.pattern,
                            scheme=option.scheme,
                            network=option.network,
                            reason="missing_scheme",
                            message=(
                                f'Route "{route.pattern}": No scheme implementation registered '
                                f'for "{option.scheme}" on network "{option.network}"'
                            ),
                        )
                    )
                    # Facilitator support is meaningless without a scheme
                    continue

                supported = self._server.get_supported_kind(
                    NetworkConfig.X402_VERSION, option.network, option.scheme
                )
                if supported is None:
                    errors.append(
                        RouteValidationError(
                            route_pattern=route.pattern,
                            scheme=option.scheme,
                            network=option.network,
                            reason="missing_facilitator",
                            message=(
                                f'Route "{route.pattern}": Facilitator does not support scheme '
                                f'"{option.scheme}" on network "{option.network}"'
                            ),
                        )
                    )

        return errors

    def _extract_payment(self, context: HTTPRequestContext) -> Optional[PaymentPayload]:
        """Decode the payment header; a malformed one counts as absent"""
        header = context.payment_header or context.adapter.get_header(PAYMENT_SIGNATURE_HEADER)
        if not header:
            return None

        try:
            return decode_payment_signature_header(header)
        except PaymentDecodeError as e:
            self._observer.payment_decode_failed(header, e)
            return None

    async def _resolve_unpaid_body(
        self,
        route_config: RouteConfig,
        context: HTTPRequestContext,
    ) -> Optional[UnpaidResponseResult]:
        if route_config.unpaid_response_body is None:
            return None
        try:
            return await _resolve(route_config.unpaid_response_body, context)
        except Exception as e:
            logger.error(f"unpaid_response_body failed, using default body: {e}", exc_info=True)
            return None

    def _payment_required_error(
        self,
        requirements: list[PaymentRequirements],
        resource_info: ResourceInfo,
        reason: Optional[str],
        extensions: Optional[dict[str, Any]],
        is_browser: bool,
        paywall_config: Optional[PaywallConfig] = None,
        custom_html: Optional[str] = None,
        unpaid_response: Optional[UnpaidResponseResult] = None,
    ) -> PaymentError:
        """402 for the client; 500 if the 402 itself cannot be built"""
        try:
            payment_required = self._server.create_payment_required_response(
                requirements, resource_info, reason, extensions
            )
            response = self._create_http_response(
                payment_required, is_browser, paywall_config, custom_html, unpaid_response
            )
        except Exception as e:
            logger.error(f"Failed to build payment required response: {e}", exc_info=True)
            response = self._server_error(f"Failed to build payment required response: {e}")
        return PaymentError(response=response)

    def _create_http_response(
        self,
        payment_required: PaymentRequired,
        is_browser: bool,
        paywall_config: Optional[PaywallConfig] = None,
        custom_html: Optional[str] = None,
        unpaid_response: Optional[UnpaidResponseResult] = None,
    ) -> HTTPResponseInstructions:
        if is_browser:
            html = generate_paywall_html(
                payment_required, paywall_config, custom_html, self._paywall_provider
            )
            return HTTPResponseInstructions(
                status=402,
                headers={"Content-Type": "text/html"},
                body=html,
                is_html=True,
            )

        content_type = unpaid_response.content_type if unpaid_response else "application/json"
        body = unpaid_response.body if unpaid_response else {}

        return HTTPResponseInstructions(
            status=402,
            headers={
                "Content-Type": content_type,
                PAYMENT_REQUIRED_HEADER: encode_payment_required_header(payment_required),
            },
            body=body,
        )

    @staticmethod
    def _create_settlement_headers(
        settle_response: SettleResponse,
        requirements: PaymentRequirements,
    ) -> dict[str, str]:
        receipt = SettlementReceipt.model_validate(
            {**settle_response.model_dump(), "requirements": requirements}
        )
        return {PAYMENT_RESPONSE_HEADER: encode_payment_response_header(receipt)}

    @staticmethod
    def _server_error(message: str) -> HTTPResponseInstructions:
        return HTTPResponseInstructions(
            status=500,
            headers={"Content-Type": "application/json"},
            body={"error": message},
        )


def adapter_context(adapter: HTTPAdapter) -> HTTPRequestContext:
    """Build a request context straight from an adapter"""
    return HTTPRequestContext(
        adapter=adapter,
        path=adapter.get_path(),
        method=adapter.get_method(),
        payment_header=adapter.get_header(PAYMENT_SIGNATURE_HEADER),
    )
